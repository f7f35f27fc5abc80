from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase


def utcnow() -> datetime:
    """Naive UTC timestamp, the representation every store column uses."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class OrderServiceBase(DeclarativeBase):
    """Base class for Order Store models."""

    pass


class OrderEventsBase(DeclarativeBase):
    """Base class for Event Store models (separate database)."""

    pass
