"""Middleware module for ClaimGuard."""

from claimguard.middleware.security_headers import SecurityHeadersMiddleware

__all__ = ["SecurityHeadersMiddleware"]
