"""Operator endpoints for reviewing the security audit trail."""

from fastapi import APIRouter, Depends, Query

from claimguard.api.auth import verify_admin_key
from claimguard.api.deps import get_claim_token_service
from claimguard.models.security_event import SecurityEventType
from claimguard.schemas.claim_token import (
    BlockedIp,
    SecurityEventResponse,
    SecuritySummaryResponse,
)
from claimguard.services.claim_tokens import ClaimTokenService

router = APIRouter(
    prefix="/security-events",
    tags=["security-events"],
    dependencies=[Depends(verify_admin_key)],
)


@router.get("", response_model=list[SecurityEventResponse])
async def list_security_events(
    ip_address: str | None = Query(None, max_length=45),
    event_type: SecurityEventType | None = None,
    limit: int = Query(100, ge=1, le=1000),
    service: ClaimTokenService = Depends(get_claim_token_service),
) -> list[SecurityEventResponse]:
    events = await service.audit_log.list_events(
        ip_address=ip_address, event_type=event_type, limit=limit
    )
    return [SecurityEventResponse.model_validate(event) for event in events]


@router.get("/summary", response_model=SecuritySummaryResponse)
async def security_summary(
    days: int = Query(30, ge=1, le=365),
    service: ClaimTokenService = Depends(get_claim_token_service),
) -> SecuritySummaryResponse:
    """Event counts plus the IPs the fraud guard is refusing right now."""
    summary = await service.audit_log.summarize(days)
    blocked = await service.fraud_guard.blocked_ips()
    return SecuritySummaryResponse(
        **summary,
        blocked_ips=[BlockedIp(**entry) for entry in blocked],
    )
