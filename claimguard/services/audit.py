"""Security Audit Log.

Append-only record of claim token activity, read back by the fraud guard
and by operators:
- Token issuance, validation, redemption, extension and cleanup
- Invalid token attempts and IP block escalations

Writing an event never fails the caller. If the row cannot be stored the
event is forwarded to the ``claimguard.security.fallback`` logger instead.
"""

from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from pydantic_core import to_jsonable_python
from sqlalchemy import delete, desc, distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from claimguard.core.logging import get_logger
from claimguard.models.security_event import SecurityEvent, SecurityEventType, Severity
from claimguard.services.token_format import utcnow

logger = get_logger("security.audit")
fallback_logger = get_logger("security.fallback")

# Source address recorded for events with no originating client
SYSTEM_IP = "0.0.0.0"


class SecurityAuditLog:
    """Writes and queries rows of the ``security_log`` table.

    Each event is written in its own short session so that a failed insert
    cannot poison the caller's unit of work, and so that the fraud guard sees
    the event as soon as ``record`` returns.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Callable[[], datetime] = utcnow,
    ):
        self._session_factory = session_factory
        self._clock = clock

    async def record(
        self,
        event_type: SecurityEventType | str,
        details: dict[str, Any] | None = None,
        severity: Severity | str = Severity.MEDIUM,
        ip_address: str | None = None,
        blocked_until: datetime | None = None,
    ) -> bool:
        """Append one security event.

        Args:
            event_type: Event tag from SecurityEventType
            details: Structured details, serialized to JSON
            severity: low, medium or high
            ip_address: Source address (defaults to details["ip_address"])
            blocked_until: Only meaningful for ip_blocked events

        Returns:
            True if the row was stored, False if it went to the fallback logger
        """
        payload = details or {}
        source_ip = ip_address or payload.get("ip_address") or SYSTEM_IP
        event_name = getattr(event_type, "value", event_type)

        try:
            event = SecurityEvent(
                ip_address=source_ip,
                event_type=SecurityEventType(event_type).value,
                details=to_jsonable_python(payload),
                severity=Severity(severity).value,
                blocked_until=blocked_until,
                created_at=self._clock(),
            )
            async with self._session_factory() as session:
                session.add(event)
                await session.commit()
            return True
        except Exception as e:
            fallback_logger.error(
                f"Security log write failed for {event_name}: {e}",
                extra={
                    "event_type": event_name,
                    "severity": getattr(severity, "value", severity),
                    "source_ip": source_ip,
                    "details": payload,
                },
            )
            return False

    async def list_events(
        self,
        ip_address: str | None = None,
        event_type: SecurityEventType | str | None = None,
        limit: int = 100,
    ) -> list[SecurityEvent]:
        """Most recent events first, optionally filtered by IP and type."""
        query = select(SecurityEvent)
        if ip_address:
            query = query.where(SecurityEvent.ip_address == ip_address)
        if event_type:
            query = query.where(SecurityEvent.event_type == SecurityEventType(event_type).value)
        query = query.order_by(desc(SecurityEvent.created_at), desc(SecurityEvent.id)).limit(limit)

        async with self._session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def summarize(self, days: int = 30) -> dict[str, Any]:
        """Event counts by type over the last ``days`` days.

        ``flagged_ips`` counts addresses whose informational 24h
        ``blocked_until`` stamp has not passed yet. It is not the enforcement
        view; see FraudGuard.blocked_ips() for that.
        """
        now = self._clock()
        since = now - timedelta(days=days)

        async with self._session_factory() as session:
            by_type = await session.execute(
                select(SecurityEvent.event_type, func.count(SecurityEvent.id))
                .where(SecurityEvent.created_at >= since)
                .group_by(SecurityEvent.event_type)
                .order_by(SecurityEvent.event_type)
            )
            flagged = await session.execute(
                select(func.count(distinct(SecurityEvent.ip_address))).where(
                    SecurityEvent.event_type == SecurityEventType.IP_BLOCKED.value,
                    SecurityEvent.blocked_until > now,
                )
            )

            return {
                "days": days,
                "events_by_type": {event_type: count for event_type, count in by_type.all()},
                "flagged_ips": flagged.scalar() or 0,
            }

    async def purge_older_than(self, days: int) -> int:
        """Delete events older than ``days`` days. Returns count removed.

        Retention sweep for the scheduled maintenance job only.
        """
        cutoff = self._clock() - timedelta(days=max(1, days))

        async with self._session_factory() as session:
            result = await session.execute(
                delete(SecurityEvent)
                .where(SecurityEvent.created_at < cutoff)
                .execution_options(synchronize_session=False)
            )
            await session.commit()

        deleted = result.rowcount
        if deleted:
            logger.info(f"Purged {deleted} security events older than {days} days")
        return deleted
