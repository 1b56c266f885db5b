"""Fraud guard - rolling-window refusal of IPs that keep presenting bad tokens.

An IP is blocked while it has at least ``max_attempts`` ``invalid_token``
events newer than ``now - window``. Nothing is stored as "blocked": the
decision is recomputed from the audit trail on every check, so a block lifts
by itself once old failures slide out of the window.

When a failure reaches the threshold an ``ip_blocked`` event is appended with
``blocked_until = now + block_duration`` (24h by default). That stamp is for
operators only; is_blocked() never reads it.

Concurrent failures from one IP are not serialized, so under parallel load a
few more attempts than the threshold can get through before the count
catches up.
"""

from collections.abc import Callable
from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from claimguard.core.config import settings
from claimguard.core.logging import get_logger
from claimguard.models.security_event import SecurityEvent, SecurityEventType, Severity
from claimguard.services.audit import SecurityAuditLog
from claimguard.services.token_format import mask_token, utcnow

logger = get_logger("security.fraud_guard")


class FraudGuard:
    """Per-IP brute-force protection for claim token validation."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        audit_log: SecurityAuditLog,
        clock: Callable[[], datetime] = utcnow,
        max_attempts: int | None = None,
        window_seconds: int | None = None,
        block_duration_seconds: int | None = None,
    ):
        self._session_factory = session_factory
        self._audit = audit_log
        self._clock = clock
        self.max_attempts = max_attempts or settings.max_attempts_per_hour
        self.window = timedelta(seconds=window_seconds or settings.failure_window_seconds)
        self.block_duration = timedelta(
            seconds=block_duration_seconds or settings.ip_block_duration_seconds
        )

    def _window_start(self) -> datetime:
        return self._clock() - self.window

    async def count_recent_failures(self, ip_address: str) -> int:
        """Number of invalid_token events for the IP strictly inside the window."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(func.count(SecurityEvent.id)).where(
                    SecurityEvent.ip_address == ip_address,
                    SecurityEvent.event_type == SecurityEventType.INVALID_TOKEN.value,
                    SecurityEvent.created_at > self._window_start(),
                )
            )
            return result.scalar() or 0

    async def is_blocked(self, ip_address: str) -> bool:
        return await self.count_recent_failures(ip_address) >= self.max_attempts

    async def record_failure(self, ip_address: str, reason: str, token: str) -> int:
        """Log a failed validation and escalate once the threshold is reached.

        Returns the attempt count including this failure.
        """
        attempts = await self.count_recent_failures(ip_address) + 1

        await self._audit.record(
            SecurityEventType.INVALID_TOKEN,
            {
                "ip_address": ip_address,
                "reason": reason,
                "token_partial": mask_token(token),
                "attempt_count": attempts,
            },
            ip_address=ip_address,
        )

        if attempts >= self.max_attempts:
            await self._flag_ip(ip_address, attempts)

        return attempts

    async def _flag_ip(self, ip_address: str, attempts: int) -> None:
        blocked_until = self._clock() + self.block_duration
        logger.warning(
            f"IP {ip_address} reached {attempts} invalid claim token attempts "
            f"within {int(self.window.total_seconds())}s"
        )
        await self._audit.record(
            SecurityEventType.IP_BLOCKED,
            {
                "ip_address": ip_address,
                "blocked_until": blocked_until,
                "duration_hours": self.block_duration.total_seconds() / 3600,
                "attempt_count": attempts,
            },
            severity=Severity.HIGH,
            ip_address=ip_address,
            blocked_until=blocked_until,
        )

    async def blocked_ips(self) -> list[dict]:
        """IPs currently refused by the rolling-window rule, worst first."""
        attempts = func.count(SecurityEvent.id).label("attempts")
        async with self._session_factory() as session:
            result = await session.execute(
                select(SecurityEvent.ip_address, attempts)
                .where(
                    SecurityEvent.event_type == SecurityEventType.INVALID_TOKEN.value,
                    SecurityEvent.created_at > self._window_start(),
                )
                .group_by(SecurityEvent.ip_address)
                .having(func.count(SecurityEvent.id) >= self.max_attempts)
                .order_by(attempts.desc(), SecurityEvent.ip_address)
            )
            return [
                {"ip_address": ip_address, "attempts": count}
                for ip_address, count in result.all()
            ]
