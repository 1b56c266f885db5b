"""ClaimToken model - single-use secrets that unlock the prize claim flow."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from claimguard.models.base import BaseModel
from claimguard.services.token_format import as_utc


class ClaimToken(BaseModel):
    """One issuance of a redeemable claim token.

    ``participant_id`` refers to the participants table owned by the
    registration subsystem; no relationship is mapped because the token
    store never loads or mutates participants through it.

    Expiry is derived from ``expires_at`` at read time; there is no stored
    "expired" flag. ``is_used`` only ever flips from False to True.
    """

    __tablename__ = "claim_tokens"

    participant_id: Mapped[int] = mapped_column(Integer, nullable=False)
    token: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    token_type: Mapped[str] = mapped_column(String(50), nullable=False, default="winner_claim")
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    used_by_ip: Mapped[str | None] = mapped_column(String(45), nullable=True)

    __table_args__ = (
        Index("ix_claim_tokens_participant_type", "participant_id", "token_type"),
        Index("ix_claim_tokens_expires_at", "expires_at"),
    )

    def is_expired(self, now: datetime) -> bool:
        return not self.is_used and as_utc(self.expires_at) < now

    def is_active(self, now: datetime) -> bool:
        return not self.is_used and as_utc(self.expires_at) > now

    def __repr__(self) -> str:
        return (
            f"<ClaimToken {self.token[:8]}... participant={self.participant_id} "
            f"type={self.token_type} used={self.is_used}>"
        )
