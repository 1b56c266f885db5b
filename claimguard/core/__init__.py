# ClaimGuard Core Module
from .config import get_settings, settings
from .database import (
    Base,
    async_session_maker,
    check_db_connection,
    create_session_factory,
    engine,
)
from .logging import get_logger, setup_logging

__all__ = [
    "settings",
    "get_settings",
    "setup_logging",
    "get_logger",
    "Base",
    "engine",
    "async_session_maker",
    "create_session_factory",
    "check_db_connection",
]
