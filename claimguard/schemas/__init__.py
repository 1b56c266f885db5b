# ClaimGuard Pydantic Schemas
from claimguard.schemas.claim_token import (
    BlockedIp,
    ClaimTokenView,
    ExtendTokenRequest,
    GenerateTokenRequest,
    ParticipantSummary,
    PrizeSummary,
    SecurityEventResponse,
    SecuritySummaryResponse,
    TokenResult,
    TokenStatistics,
    TokenTypeCount,
    UsageWindow,
)

__all__ = [
    "BlockedIp",
    "ClaimTokenView",
    "ExtendTokenRequest",
    "GenerateTokenRequest",
    "ParticipantSummary",
    "PrizeSummary",
    "SecurityEventResponse",
    "SecuritySummaryResponse",
    "TokenResult",
    "TokenStatistics",
    "TokenTypeCount",
    "UsageWindow",
]
