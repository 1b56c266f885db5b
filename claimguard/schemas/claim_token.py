"""Pydantic schemas for claim token operations."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ParticipantSummary(BaseModel):
    """Contact details of the winner, as shown in the claim flow."""

    id: int
    first_name: str
    last_name: str
    email: str
    phone: str | None = None


class PrizeSummary(BaseModel):
    game_name: str
    prize_value: float
    currency: str


class ClaimTokenView(BaseModel):
    """Token row returned by validation and redemption."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    participant_id: int
    token: str
    token_type: str
    expires_at: datetime
    is_used: bool
    used_at: datetime | None = None
    used_by_ip: str | None = None
    created_at: datetime
    game_id: int | None = None


class TokenResult(BaseModel):
    """Outcome of a claim token operation.

    ``success`` is always set. Failures carry ``error`` (safe to show to the
    end user) and a machine readable ``reason``; the ``blocked``, ``expired``
    and ``existing`` flags let callers pick a distinct message.
    """

    success: bool
    error: str | None = None
    reason: str | None = None
    blocked: bool | None = None
    expired: bool | None = None
    existing: bool | None = None

    # generate
    token: str | None = None
    expires_at: datetime | None = None
    claim_url: str | None = None

    # validate / use
    token_data: ClaimTokenView | None = None
    participant: ParticipantSummary | None = None
    prize: PrizeSummary | None = None

    # extend
    new_expiry: datetime | None = None

    # cleanup
    deleted_count: int | None = None


class TokenTypeCount(BaseModel):
    token_type: str
    count: int


class UsageWindow(BaseModel):
    """Issuance vs. redemption over the recent window."""

    days: int
    generated: int
    used: int
    usage_rate: float


class TokenStatistics(BaseModel):
    success: bool = True
    error: str | None = None
    total_tokens: int = 0
    used_tokens: int = 0
    active_tokens: int = 0
    expired_tokens: int = 0
    by_type: list[TokenTypeCount] = Field(default_factory=list)
    recent_usage: UsageWindow | None = None


class GenerateTokenRequest(BaseModel):
    participant_id: int = Field(..., gt=0)
    token_type: str = Field("winner_claim", min_length=1, max_length=50)
    expiry_seconds: int | None = Field(None, gt=0, description="Defaults to 30 days")


class ExtendTokenRequest(BaseModel):
    additional_seconds: int = Field(..., gt=0)


class SecurityEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    ip_address: str
    event_type: str
    details: dict[str, Any] | None = None
    severity: str
    blocked_until: datetime | None = None
    created_at: datetime


class BlockedIp(BaseModel):
    ip_address: str
    attempts: int


class SecuritySummaryResponse(BaseModel):
    days: int
    events_by_type: dict[str, int]
    flagged_ips: int
    blocked_ips: list[BlockedIp]
