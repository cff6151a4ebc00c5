"""
SQLAlchemy Base Models

Declarative base and the timestamp mixin shared by users, topics and notes.
"""

from datetime import datetime

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Declarative base for the notekeeper tables."""


class TimestampMixin:
    """
    ``created_at`` / ``updated_at`` columns, both written by the database.

    For notes, ``updated_at`` also moves when the processor writes its
    targeted update (topic, summary, content, embedding), since the
    ``onupdate`` default applies to Core UPDATE statements too. A note whose
    ``updated_at`` is NULL has been neither processed nor edited since upload.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        onupdate=func.now(),
        nullable=True,
    )
