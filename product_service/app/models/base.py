from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def catalog_now() -> datetime:
    """Naive UTC timestamp, the form the catalog tables store."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ProductServiceBase(DeclarativeBase):
    """Declarative base for the catalog store."""


class ProductServiceBaseModel(ProductServiceBase):
    """Catalog rows carry creation and last-admin-edit times."""

    __abstract__ = True
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=catalog_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        default=catalog_now,
        onupdate=catalog_now,
        nullable=False,
    )
