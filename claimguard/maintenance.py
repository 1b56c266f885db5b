"""Maintenance commands for ClaimGuard, meant to be run from cron.

Usage:
    claimguard-maintenance cleanup [--older-than-days N]
    claimguard-maintenance stats

Both commands print a JSON document to stdout and exit non-zero on failure.
The database is taken from DATABASE_URL like the web application.
"""

import argparse
import asyncio
import json
import sys

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from claimguard.core import async_session_maker, engine, settings, setup_logging
from claimguard.services.claim_tokens import ClaimTokenService


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="claimguard-maintenance", description="ClaimGuard claim token maintenance"
    )
    subcommands = parser.add_subparsers(dest="command", required=True)

    cleanup = subcommands.add_parser("cleanup", help="Delete stale claim tokens")
    cleanup.add_argument(
        "--older-than-days",
        type=int,
        default=None,
        help=f"Retention window in days (default: {settings.token_retention_days})",
    )

    subcommands.add_parser("stats", help="Print claim token statistics")
    return parser


async def run_command(
    args: argparse.Namespace,
    session_factory: async_sessionmaker[AsyncSession],
) -> tuple[int, dict]:
    """Execute a parsed command. Returns (exit code, JSON payload)."""
    service = ClaimTokenService(session_factory)

    if args.command == "cleanup":
        if args.older_than_days is not None and args.older_than_days < 1:
            return 2, {"success": False, "error": "--older-than-days must be at least 1"}
        result = await service.cleanup_expired_tokens(args.older_than_days)
    else:
        result = await service.get_statistics()

    return (0 if result.success else 1), result.model_dump(mode="json", exclude_none=True)


async def _main(args: argparse.Namespace) -> int:
    try:
        code, payload = await run_command(args, async_session_maker)
    finally:
        await engine.dispose()
    print(json.dumps(payload, indent=2))
    return code


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    # Logs go to stderr so stdout stays machine readable
    setup_logging(level=settings.log_level, format_type=settings.log_format, stream=sys.stderr)
    return asyncio.run(_main(args))


if __name__ == "__main__":
    sys.exit(main())
