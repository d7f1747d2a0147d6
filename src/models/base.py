"""SQLAlchemy declarative base with common mixins."""
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import DateTime, Uuid, event
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column
from uuid6 import uuid7


def utcnow() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class UUIDv7Mixin:
    """
    Mixin that adds a UUIDv7 primary key generated on the client side.

    UUIDv7 ids are time-ordered, so new rows land at the end of the primary key index.
    """

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid7)


class TimestampMixin:
    """
    Mixin that adds created_at and updated_at columns.

    All timestamps are timezone-aware (stored as TIMESTAMP WITH TIME ZONE in PostgreSQL).

    Values are generated in Python rather than by the server so the same models
    behave identically on PostgreSQL and SQLite. updated_at is refreshed by the
    before_flush hook below whenever a column attribute of the row changed.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        index=True,
    )


@event.listens_for(Session, "before_flush")
def stamp_updated_at(session: Session, _flush_context: Any, _instances: Any) -> None:
    """Refresh updated_at on every modified row that carries timestamps."""
    now = utcnow()
    for obj in session.dirty:
        if isinstance(obj, TimestampMixin) and session.is_modified(
            obj, include_collections=False,
        ):
            obj.updated_at = now
