"""ClaimGuard - FastAPI Application Factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from claimguard.api import api_router
from claimguard.api.claims import router as claims_router
from claimguard.api.health import router as health_router
from claimguard.core import async_session_maker, engine, settings, setup_logging
from claimguard.core.logging import get_logger
from claimguard.middleware import SecurityHeadersMiddleware

# Import all models to ensure they're registered with Base
from claimguard.models import ClaimToken, Participant, SecurityEvent  # noqa: F401
from claimguard.services.claim_tokens import ClaimTokenService
from claimguard.services.token_retention import TokenRetentionService

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    setup_logging(level=settings.log_level, format_type=settings.log_format)
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")

    for warning in settings.check_security_configuration():
        logger.warning(f"SECURITY: {warning}")

    retention: TokenRetentionService | None = None
    if settings.retention_interval_seconds > 0:
        retention = TokenRetentionService(ClaimTokenService(async_session_maker))
        await retention.start()
    app.state.token_retention = retention

    yield

    logger.info("Shutting down...")
    if retention is not None:
        await retention.stop()
    await engine.dispose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        description="Single-use claim links for prize winners",
        version=settings.app_version,
        lifespan=lifespan,
        # The schema lists every operator endpoint; only expose it in debug
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
    )

    app.add_middleware(SecurityHeadersMiddleware)

    app.include_router(health_router)  # Health at root level
    app.include_router(claims_router)  # Public claim links (/claim)
    app.include_router(api_router)  # Operator API at /api

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint with API information."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
        }

    return app


# Application instance
app = create_app()
