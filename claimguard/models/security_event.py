"""SecurityEvent model - append-only audit trail of claim token activity."""

from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import JSON, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from claimguard.models.base import BaseModel


class SecurityEventType(str, Enum):
    """Event taxonomy written by the claim token services."""

    TOKEN_GENERATED = "token_generated"
    TOKEN_GENERATION_FAILED = "token_generation_failed"
    BLOCKED_IP_ATTEMPT = "blocked_ip_attempt"
    INVALID_TOKEN = "invalid_token"
    TOKEN_VALIDATED = "token_validated"
    TOKEN_VALIDATION_ERROR = "token_validation_error"
    TOKEN_USED = "token_used"
    TOKEN_USAGE_ERROR = "token_usage_error"
    TOKEN_EXTENDED = "token_extended"
    TOKENS_CLEANED = "tokens_cleaned"
    IP_BLOCKED = "ip_blocked"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class SecurityEvent(BaseModel):
    """A single security-relevant occurrence.

    Rows are never updated. ``blocked_until`` is only set on ``ip_blocked``
    events and is informational: enforcement recounts ``invalid_token``
    rows inside the rolling window instead of reading it.
    """

    __tablename__ = "security_log"

    ip_address: Mapped[str] = mapped_column(String(45), nullable=False)
    event_type: Mapped[str] = mapped_column(String(50), nullable=False)
    details: Mapped[dict[str, Any] | None] = mapped_column("details_json", JSON, nullable=True)
    severity: Mapped[str] = mapped_column(String(10), nullable=False, default=Severity.MEDIUM.value)
    blocked_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_security_log_ip_type_created", "ip_address", "event_type", "created_at"),
        Index("ix_security_log_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<SecurityEvent {self.event_type} {self.ip_address} ({self.severity})>"

