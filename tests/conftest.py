"""Pytest configuration and fixtures for ClaimGuard tests.

Database Handling:
- If TEST_DATABASE_URL is set (e.g. postgresql+asyncpg://...), tests run against it
- Otherwise each test gets a fresh SQLite file through aiosqlite
"""

import os
from collections.abc import AsyncGenerator, Callable
from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

# Set test environment variables before importing claimguard modules
TEST_ADMIN_KEY = "a" * 64
os.environ["ADMIN_API_KEY"] = TEST_ADMIN_KEY
os.environ["CLAIM_BASE_URL"] = "https://claims.example.test"
os.environ["DATABASE_URL"] = os.environ.get(
    "TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:"
)

# Fixed starting point for the fake clock
T0 = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


class FakeClock:
    """Injectable clock; advance() moves time forward deterministically."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# --- Database Fixtures ---


@pytest_asyncio.fixture(scope="function")
async def db_engine(tmp_path):
    """Create a database engine with all ClaimGuard tables."""
    import claimguard.models  # noqa: F401
    from claimguard.core.database import Base

    url = os.environ.get("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'claimguard.db'}"
    engine = create_async_engine(url, poolclass=NullPool, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def make_participant(session_factory) -> Callable:
    """Factory inserting a participant with its round and game.

    Defaults describe an eligible winner: paid, in a completed round.
    """
    from claimguard.models import Game, Participant, Round

    async def _make(
        participant_id: int | None = None,
        is_winner: bool = True,
        payment_status: str = "paid",
        round_status: str = "completed",
        prize_value: float = 250.0,
    ) -> int:
        async with session_factory() as session:
            game = Game(name="Summer Jackpot", prize_value=prize_value, currency="GBP")
            session.add(game)
            await session.flush()

            round_ = Round(game_id=game.id, status=round_status)
            session.add(round_)
            await session.flush()

            participant = Participant(
                round_id=round_.id,
                first_name="Alex",
                last_name="Winner",
                user_email="alex@example.test",
                phone="+447700900123",
                is_winner=is_winner,
                payment_status=payment_status,
            )
            if participant_id is not None:
                participant.id = participant_id
            session.add(participant)
            await session.commit()
            return participant.id

    return _make


@pytest_asyncio.fixture
async def winner_id(make_participant) -> int:
    return await make_participant()


@pytest.fixture
def audit_log(session_factory, clock):
    from claimguard.services.audit import SecurityAuditLog

    return SecurityAuditLog(session_factory, clock=clock)


@pytest.fixture
def fraud_guard(session_factory, audit_log, clock):
    from claimguard.services.fraud_guard import FraudGuard

    return FraudGuard(
        session_factory,
        audit_log,
        clock=clock,
        max_attempts=4,
        window_seconds=3600,
        block_duration_seconds=86400,
    )


@pytest.fixture
def token_service(session_factory, audit_log, fraud_guard, clock):
    from claimguard.services.claim_tokens import ClaimTokenService

    return ClaimTokenService(
        session_factory,
        audit_log=audit_log,
        fraud_guard=fraud_guard,
        clock=clock,
        claim_url_builder=lambda token: f"https://claims.example.test/claim/{token}",
        default_expiry_seconds=30 * 24 * 3600,
        statistics_window_days=30,
    )


# --- HTTP Client ---


@pytest_asyncio.fixture(scope="function")
async def async_client(
    session_factory, token_service
) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client wired to the test database and clock."""
    from claimguard.api.deps import get_claim_token_service, get_session_factory
    from claimguard.main import app

    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_claim_token_service] = lambda: token_service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"X-Admin-Key": TEST_ADMIN_KEY}
