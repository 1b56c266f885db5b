"""Operator authentication - API key check for token administration endpoints.

Issuing, extending and purging tokens and reading the security log require
the ``X-Admin-Key`` header. Claim endpoints used by winners are public.
"""

import logging
import secrets

from fastapi import Header, HTTPException, status

from claimguard.core.config import settings

logger = logging.getLogger(__name__)


async def verify_admin_key(
    x_admin_key: str | None = Header(None, alias="X-Admin-Key"),
) -> None:
    """Verify the operator API key.

    Raises:
        HTTPException: 503 if no key is configured, 401 if missing or wrong.
    """
    if not settings.admin_api_key:
        logger.error(
            "ADMIN_API_KEY not configured - operator endpoints are disabled. "
            'Generate a key with: python -c "import secrets; print(secrets.token_hex(32))"'
        )
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Operator API not configured - missing ADMIN_API_KEY",
        )

    if not x_admin_key:
        logger.warning("Rejected operator request: missing X-Admin-Key header")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-Admin-Key header",
        )

    if not secrets.compare_digest(x_admin_key.encode(), settings.admin_api_key.encode()):
        logger.warning("Rejected operator request: invalid admin key")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin key",
        )
