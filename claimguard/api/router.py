"""ClaimGuard API Router - aggregates operator routes under /api."""

from fastapi import APIRouter

from claimguard.api import claim_tokens, security_events

api_router = APIRouter(prefix="/api")

api_router.include_router(claim_tokens.router)
api_router.include_router(security_events.router)
