"""Operator endpoints for issuing and maintaining claim tokens."""

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from claimguard.api.auth import verify_admin_key
from claimguard.api.deps import get_claim_token_service, result_response
from claimguard.schemas.claim_token import (
    ExtendTokenRequest,
    GenerateTokenRequest,
    TokenResult,
    TokenStatistics,
)
from claimguard.services.claim_tokens import ClaimTokenService

router = APIRouter(
    prefix="/claim-tokens",
    tags=["claim-tokens"],
    dependencies=[Depends(verify_admin_key)],
)


@router.post("", response_model=TokenResult, status_code=status.HTTP_201_CREATED)
async def generate_claim_token(
    body: GenerateTokenRequest,
    service: ClaimTokenService = Depends(get_claim_token_service),
) -> JSONResponse:
    """Issue a claim token for a winner.

    Returns 201 for a new token and 200 when an active token was reused.
    """
    result = await service.generate_token(
        body.participant_id,
        token_type=body.token_type,
        expiry_seconds=body.expiry_seconds,
    )
    return result_response(
        result,
        success_status=status.HTTP_200_OK if result.existing else status.HTTP_201_CREATED,
    )


@router.get("/statistics", response_model=TokenStatistics)
async def get_token_statistics(
    service: ClaimTokenService = Depends(get_claim_token_service),
) -> JSONResponse:
    stats = await service.get_statistics()
    return JSONResponse(
        status_code=status.HTTP_200_OK if stats.success else status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=stats.model_dump(mode="json", exclude_none=True),
    )


@router.post("/cleanup", response_model=TokenResult)
async def cleanup_claim_tokens(
    older_than_days: int | None = Query(None, ge=1, le=3650),
    service: ClaimTokenService = Depends(get_claim_token_service),
) -> JSONResponse:
    """Delete tokens that expired or were used before the retention window."""
    result = await service.cleanup_expired_tokens(older_than_days)
    return result_response(result)


@router.post("/{token}/extend", response_model=TokenResult)
async def extend_claim_token(
    token: str,
    body: ExtendTokenRequest,
    service: ClaimTokenService = Depends(get_claim_token_service),
) -> JSONResponse:
    result = await service.extend_token(token, body.additional_seconds)
    return result_response(result)
