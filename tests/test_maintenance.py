"""Tests for the claimguard-maintenance command."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from claimguard import maintenance


class TestParser:
    def test_cleanup_arguments(self):
        args = maintenance.build_parser().parse_args(["cleanup", "--older-than-days", "30"])
        assert args.command == "cleanup"
        assert args.older_than_days == 30

    def test_cleanup_default_uses_settings(self):
        args = maintenance.build_parser().parse_args(["cleanup"])
        assert args.older_than_days is None

    def test_command_required(self):
        with pytest.raises(SystemExit):
            maintenance.build_parser().parse_args([])


class TestRunCommand:
    """Commands executed against the test database."""

    async def test_cleanup(self, session_factory, make_participant):
        from claimguard.services.claim_tokens import ClaimTokenService

        participant_id = await make_participant()
        service = ClaimTokenService(session_factory)
        issued = await service.generate_token(participant_id)
        await service.use_token(issued.token, "198.51.100.7")

        args = maintenance.build_parser().parse_args(["cleanup", "--older-than-days", "1"])
        code, payload = await maintenance.run_command(args, session_factory)

        # Used just now, so still inside the retention window
        assert code == 0
        assert payload == {"success": True, "deleted_count": 0}

    async def test_cleanup_rejects_zero_days(self, session_factory):
        args = maintenance.build_parser().parse_args(["cleanup", "--older-than-days", "0"])
        code, payload = await maintenance.run_command(args, session_factory)

        assert code == 2
        assert payload["success"] is False

    async def test_stats(self, session_factory, make_participant):
        from claimguard.services.claim_tokens import ClaimTokenService

        participant_id = await make_participant()
        await ClaimTokenService(session_factory).generate_token(participant_id)

        args = maintenance.build_parser().parse_args(["stats"])
        code, payload = await maintenance.run_command(args, session_factory)

        assert code == 0
        assert payload["total_tokens"] == 1
        assert payload["active_tokens"] == 1
        assert payload["by_type"] == [{"token_type": "winner_claim", "count": 1}]


class TestMain:
    def test_prints_json_and_returns_exit_code(self, capsys):
        run = AsyncMock(return_value=(1, {"success": False, "error": "Cleanup failed"}))

        with (
            patch.object(maintenance, "run_command", run),
            patch.object(maintenance, "setup_logging"),
            patch.object(maintenance, "engine", MagicMock(dispose=AsyncMock())) as engine,
        ):
            code = maintenance.main(["cleanup"])

        assert code == 1
        engine.dispose.assert_awaited_once()
        assert json.loads(capsys.readouterr().out) == {
            "success": False,
            "error": "Cleanup failed",
        }
