"""ClaimGuard HTTP API."""

from claimguard.api.router import api_router

__all__ = ["api_router"]
