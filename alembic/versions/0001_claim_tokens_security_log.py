"""Claim tokens and security log tables.

Revision ID: 0001
Revises:
Create Date: 2026-10-18 09:30:00

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # Claim tokens table
    op.create_table(
        "claim_tokens",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("participant_id", sa.Integer(), nullable=False),
        sa.Column("token", sa.String(length=64), nullable=False),
        sa.Column(
            "token_type", sa.String(length=50), nullable=False, server_default="winner_claim"
        ),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_used", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("used_by_ip", sa.String(length=45), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("token", name="uq_claim_tokens_token"),
    )
    op.create_index(
        "ix_claim_tokens_participant_type", "claim_tokens", ["participant_id", "token_type"]
    )
    op.create_index("ix_claim_tokens_expires_at", "claim_tokens", ["expires_at"])

    # Security log table (append-only)
    op.create_table(
        "security_log",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("ip_address", sa.String(length=45), nullable=False),
        sa.Column("event_type", sa.String(length=50), nullable=False),
        sa.Column("details_json", sa.JSON(), nullable=True),
        sa.Column("severity", sa.String(length=10), nullable=False, server_default="medium"),
        sa.Column("blocked_until", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_security_log_ip_type_created",
        "security_log",
        ["ip_address", "event_type", "created_at"],
    )
    op.create_index("ix_security_log_created_at", "security_log", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_security_log_created_at", table_name="security_log")
    op.drop_index("ix_security_log_ip_type_created", table_name="security_log")
    op.drop_table("security_log")

    op.drop_index("ix_claim_tokens_expires_at", table_name="claim_tokens")
    op.drop_index("ix_claim_tokens_participant_type", table_name="claim_tokens")
    op.drop_table("claim_tokens")
