"""Tests for the token retention background job."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from claimguard.schemas.claim_token import TokenResult
from claimguard.services.token_retention import RetentionRun, TokenRetentionService


def _mock_token_service(deleted: int = 0, purged: int = 0, success: bool = True) -> MagicMock:
    service = MagicMock()
    service.cleanup_expired_tokens = AsyncMock(
        return_value=TokenResult(success=True, deleted_count=deleted)
        if success
        else TokenResult(success=False, error="Cleanup failed", reason="internal_error")
    )
    service.audit_log.purge_older_than = AsyncMock(return_value=purged)
    return service


class TestRunCleanupNow:
    """Tests for a single retention pass."""

    async def test_runs_token_cleanup_and_audit_purge(self):
        service = _mock_token_service(deleted=3, purged=7)
        retention = TokenRetentionService(
            service, interval_seconds=60, token_retention_days=45, security_log_retention_days=30
        )

        run = await retention.run_cleanup_now()

        assert run == RetentionRun(tokens_deleted=3, events_deleted=7)
        service.cleanup_expired_tokens.assert_awaited_once_with(45)
        service.audit_log.purge_older_than.assert_awaited_once_with(30)

    async def test_cleanup_failure_raises(self):
        service = _mock_token_service(success=False)
        retention = TokenRetentionService(service, interval_seconds=60)

        with pytest.raises(RuntimeError, match="Cleanup failed"):
            await retention.run_cleanup_now()
        service.audit_log.purge_older_than.assert_awaited_once()

    async def test_against_database(self, token_service, winner_id, clock, audit_log):
        await token_service.generate_token(winner_id, expiry_seconds=60)
        clock.advance(days=100)

        retention = TokenRetentionService(
            token_service,
            interval_seconds=60,
            token_retention_days=60,
            security_log_retention_days=90,
        )
        run = await retention.run_cleanup_now()

        assert run.tokens_deleted == 1
        # token_generated is older than 90 days; tokens_cleaned was just written
        assert run.events_deleted == 1
        assert [e.event_type for e in await audit_log.list_events()] == ["tokens_cleaned"]


class TestLifecycle:
    """Tests for start/stop of the background loop."""

    async def test_start_and_stop(self):
        service = _mock_token_service()
        retention = TokenRetentionService(service, interval_seconds=3600)

        await retention.start(initial_delay=0)
        assert retention.is_running is True
        await asyncio.sleep(0.05)

        await retention.stop()
        assert retention.is_running is False
        service.cleanup_expired_tokens.assert_awaited()

    async def test_double_start_is_ignored(self):
        retention = TokenRetentionService(_mock_token_service(), interval_seconds=3600)

        await retention.start(initial_delay=3600)
        first_task = retention._task
        await retention.start(initial_delay=3600)

        assert retention._task is first_task
        await retention.stop()

    async def test_loop_survives_failed_pass(self):
        service = _mock_token_service(success=False)
        retention = TokenRetentionService(service, interval_seconds=3600)

        await retention.start(initial_delay=0)
        await asyncio.sleep(0.05)

        assert retention.is_running is True
        assert not retention._task.done()
        await retention.stop()

    def test_security_log_retention_minimum(self):
        retention = TokenRetentionService(_mock_token_service(), interval_seconds=60)
        retention.security_log_retention_days = 0
        assert retention.security_log_retention_days == 1
