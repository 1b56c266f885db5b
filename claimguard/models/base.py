"""Declarative base shared by the claim token tables."""

from datetime import datetime

from sqlalchemy import DateTime, Integer
from sqlalchemy.orm import Mapped, mapped_column

from claimguard.core.database import Base
from claimguard.services.token_format import utcnow


class BaseModel(Base):
    """Abstract base adding a surrogate key and creation timestamp.

    ``created_at`` is normally supplied by the service clock so that
    rolling-window queries and tests agree on "now"; the default only
    covers rows inserted outside the services.
    """

    __abstract__ = True

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
