"""Claim token format and clock helpers."""

import secrets
import string
from datetime import UTC, datetime

# 32 random bytes rendered as lowercase hex
TOKEN_BYTES = 32
TOKEN_LENGTH = TOKEN_BYTES * 2

# Characters of a token kept in logs and audit rows
MASK_PREFIX_LENGTH = 8

_HEX_DIGITS = frozenset(string.hexdigits)


def generate_token() -> str:
    """Return a new 64-character claim token (256 bits of entropy)."""
    return secrets.token_hex(TOKEN_BYTES)


def is_valid_token_format(value: str) -> bool:
    """True iff value is exactly 64 hexadecimal characters."""
    return len(value) == TOKEN_LENGTH and all(c in _HEX_DIGITS for c in value)


def mask_token(value: str) -> str:
    """Partial token for logs: first 8 characters plus an ellipsis."""
    return value[:MASK_PREFIX_LENGTH] + "..."


def utcnow() -> datetime:
    """Default service clock."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to timestamps read back without a zone (e.g. SQLite)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
