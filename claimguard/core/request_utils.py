"""Client address resolution for claim requests."""

import ipaddress
import logging

from fastapi import Request

logger = logging.getLogger(__name__)

# Recorded when the transport gives us no usable peer address
UNKNOWN_CLIENT_IP = "0.0.0.0"

_LOOPBACK_HOSTS = ("127.0.0.1", "::1", "localhost")


def _is_valid_ip(ip_str: str) -> bool:
    """Check if a string is a valid IP address."""
    try:
        ipaddress.ip_address(ip_str)
        return True
    except ValueError:
        return False


def _header_ip(request: Request, header: str) -> str | None:
    value = request.headers.get(header)
    if not value:
        return None
    ip = value.strip()
    if _is_valid_ip(ip):
        return ip
    logger.warning(f"Ignoring invalid {header}: {value!r}")
    return None


def get_client_ip(request: Request) -> str:
    """Return the originating address of a claim request.

    Priority:
    1. CF-Connecting-IP (set by Cloudflare, not client controlled)
    2. X-Real-IP, only when the peer is a loopback reverse proxy
    3. The socket peer address

    X-Forwarded-For is never trusted: the fraud guard counts failures per
    address, so a spoofable header would let an attacker rotate identities.
    """
    cf_ip = _header_ip(request, "CF-Connecting-IP")
    if cf_ip:
        return cf_ip

    peer = request.client.host if request.client else None

    if peer in _LOOPBACK_HOSTS:
        real_ip = _header_ip(request, "X-Real-IP")
        if real_ip:
            return real_ip

    return peer or UNKNOWN_CLIENT_IP
