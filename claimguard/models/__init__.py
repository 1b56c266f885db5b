# ClaimGuard Models
from claimguard.models.base import BaseModel
from claimguard.models.claim_token import ClaimToken
from claimguard.models.participant import Game, Participant, Round
from claimguard.models.security_event import SecurityEvent, SecurityEventType, Severity

__all__ = [
    "BaseModel",
    "ClaimToken",
    "Game",
    "Participant",
    "Round",
    "SecurityEvent",
    "SecurityEventType",
    "Severity",
]
