"""FastAPI dependencies and result-to-response mapping."""

from fastapi import Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from claimguard.core.config import settings
from claimguard.core.database import async_session_maker
from claimguard.schemas.claim_token import TokenResult
from claimguard.services.claim_tokens import ClaimTokenService

# HTTP status for each failure reason reported by ClaimTokenService
_REASON_STATUS = {
    "not_eligible": status.HTTP_400_BAD_REQUEST,
    "invalid_format": status.HTTP_400_BAD_REQUEST,
    "invalid_extension": status.HTTP_400_BAD_REQUEST,
    "invalid_expiry": status.HTTP_400_BAD_REQUEST,
    "invalid_retention": status.HTTP_400_BAD_REQUEST,
    "token_not_found": status.HTTP_404_NOT_FOUND,
    "already_used": status.HTTP_404_NOT_FOUND,
    "not_extendable": status.HTTP_404_NOT_FOUND,
    "token_expired": status.HTTP_410_GONE,
    "ip_blocked": status.HTTP_429_TOO_MANY_REQUESTS,
}


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return async_session_maker


def get_claim_token_service(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> ClaimTokenService:
    return ClaimTokenService(session_factory)


def result_response(result: TokenResult, success_status: int = status.HTTP_200_OK) -> JSONResponse:
    """Serialize a TokenResult with the status code matching its outcome."""
    headers = None
    if result.success:
        status_code = success_status
    else:
        status_code = _REASON_STATUS.get(
            result.reason or "", status.HTTP_500_INTERNAL_SERVER_ERROR
        )
        if result.blocked:
            headers = {"Retry-After": str(settings.failure_window_seconds)}

    return JSONResponse(
        status_code=status_code,
        content=result.model_dump(mode="json", exclude_none=True),
        headers=headers,
    )
