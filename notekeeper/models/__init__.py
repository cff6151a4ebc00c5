"""Models package - re-exports all models for convenient imports."""

from notekeeper.models.base import Base, TimestampMixin
from notekeeper.models.orm import EMBEDDING_DIMENSION, Note, NoteType, Topic, User

__all__ = [
    "Base",
    "TimestampMixin",
    "EMBEDDING_DIMENSION",
    "Note",
    "NoteType",
    "Topic",
    "User",
]
