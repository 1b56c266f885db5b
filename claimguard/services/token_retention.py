"""Token retention service - periodic purge of stale claim tokens and audit rows."""

import asyncio
from dataclasses import dataclass

from claimguard.core.config import settings
from claimguard.core.logging import get_logger
from claimguard.services.claim_tokens import ClaimTokenService

logger = get_logger("token_retention")

# Delay before the first pass so startup is not slowed down
STARTUP_DELAY_SECONDS = 60


@dataclass
class RetentionRun:
    """Outcome of one retention pass."""

    tokens_deleted: int
    events_deleted: int


class TokenRetentionService:
    """Background job running cleanup_expired_tokens() and the audit sweep.

    Not part of the claim token core: the core only exposes the cleanup
    operation, this job decides when to call it.
    """

    def __init__(
        self,
        token_service: ClaimTokenService,
        interval_seconds: int | None = None,
        token_retention_days: int | None = None,
        security_log_retention_days: int | None = None,
    ):
        self._token_service = token_service
        self._interval = interval_seconds or settings.retention_interval_seconds or 3600
        self._token_retention_days = token_retention_days or settings.token_retention_days
        self._security_log_retention_days = (
            security_log_retention_days or settings.security_log_retention_days
        )
        self._running = False
        self._task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def security_log_retention_days(self) -> int:
        return self._security_log_retention_days

    @security_log_retention_days.setter
    def security_log_retention_days(self, value: int) -> None:
        """Set audit retention in days (minimum 1 day)."""
        self._security_log_retention_days = max(1, value)
        logger.info(f"Security log retention set to {self._security_log_retention_days} days")

    async def start(self, initial_delay: float = STARTUP_DELAY_SECONDS) -> None:
        """Start the background retention task."""
        if self._running:
            logger.warning("Token retention service is already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._cleanup_loop(initial_delay))
        logger.info(
            f"Token retention service started (tokens: {self._token_retention_days} days, "
            f"security log: {self._security_log_retention_days} days, "
            f"interval: {self._interval}s)"
        )

    async def stop(self) -> None:
        """Stop the background retention task."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Token retention service stopped")

    async def _cleanup_loop(self, initial_delay: float) -> None:
        await asyncio.sleep(initial_delay)

        while self._running:
            try:
                await self.run_cleanup_now()
            except Exception as e:
                logger.error(f"Error in token retention cleanup: {e}")

            await asyncio.sleep(self._interval)

    async def run_cleanup_now(self) -> RetentionRun:
        """Run a single retention pass.

        Raises RuntimeError when the token cleanup reports a failure so the
        loop logs it; the audit sweep still runs first.
        """
        result = await self._token_service.cleanup_expired_tokens(self._token_retention_days)
        events_deleted = await self._token_service.audit_log.purge_older_than(
            self._security_log_retention_days
        )

        if not result.success:
            raise RuntimeError(result.error)

        run = RetentionRun(tokens_deleted=result.deleted_count or 0, events_deleted=events_deleted)
        if run.tokens_deleted or run.events_deleted:
            logger.info(
                f"Retention pass removed {run.tokens_deleted} tokens and "
                f"{run.events_deleted} security events"
            )
        return run
