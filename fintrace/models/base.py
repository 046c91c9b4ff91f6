"""
FinTrace Forensics - Base Model

Base model classes and mixins for all SQLAlchemy models.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, Uuid, event
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from fintrace.database import Base


# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


class TimestampMixin:
    """Mixin that adds created_at and updated_at timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )


class BaseModel(Base, TimestampMixin):
    """
    Abstract base model with UUID primary key and timestamps.
    All mutable models should inherit from this class.
    """

    __abstract__ = True

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(id={self.id})>"


class AppendOnlyModel(Base):
    """
    Abstract base for evidentiary records.

    Rows can be inserted but never updated or deleted through the ORM:
    - No updated_at column
    - before_update / before_delete hooks reject the flush
    """

    __abstract__ = True

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(id={self.id})>"


@event.listens_for(AppendOnlyModel, "before_update", propagate=True)
def _reject_update(mapper, connection, target):
    from fintrace.utils.error_handling import ImmutableRecordException

    raise ImmutableRecordException(type(target).__name__, target.id)


@event.listens_for(AppendOnlyModel, "before_delete", propagate=True)
def _reject_delete(mapper, connection, target):
    from fintrace.utils.error_handling import ImmutableRecordException

    raise ImmutableRecordException(type(target).__name__, target.id)
