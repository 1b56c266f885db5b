"""Public claim endpoints used by winners following their claim link."""

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from claimguard.api.deps import get_claim_token_service, result_response
from claimguard.core.request_utils import get_client_ip
from claimguard.schemas.claim_token import TokenResult
from claimguard.services.claim_tokens import ClaimTokenService

router = APIRouter(prefix="/claim", tags=["claims"])

_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"model": TokenResult, "description": "Malformed token"},
    status.HTTP_404_NOT_FOUND: {"model": TokenResult, "description": "Unknown or used token"},
    status.HTTP_410_GONE: {"model": TokenResult, "description": "Token expired"},
    status.HTTP_429_TOO_MANY_REQUESTS: {"model": TokenResult, "description": "IP blocked"},
}


@router.get("/{token}", response_model=TokenResult, responses=_RESPONSES)
async def validate_claim(
    token: str,
    request: Request,
    service: ClaimTokenService = Depends(get_claim_token_service),
) -> JSONResponse:
    """Check a claim link and return the winner and prize it unlocks."""
    result = await service.validate_token(token, get_client_ip(request))
    return result_response(result)


@router.post("/{token}/redeem", response_model=TokenResult, responses=_RESPONSES)
async def redeem_claim(
    token: str,
    request: Request,
    service: ClaimTokenService = Depends(get_claim_token_service),
) -> JSONResponse:
    """Consume a claim token. Succeeds at most once per token."""
    result = await service.use_token(token, get_client_ip(request))
    return result_response(result)
