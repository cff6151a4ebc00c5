"""
Notekeeper Database Models

SQLAlchemy 2.0 ORM models for users, topics and notes.
Uses pgvector for cosine similarity search on note embeddings.

Tables:
    users  — Note owners. Only id, email and display name are read here.
    topics — Per-user classification buckets; exactly one is the default.
    notes  — TEXT / IMAGE / DOCUMENT notes with a nullable 1536-dim embedding.
"""

from __future__ import annotations

import enum
import uuid

from pgvector.sqlalchemy import Vector
from sqlalchemy import Boolean, Enum, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from notekeeper.models.base import Base, TimestampMixin

# Output size of text-embedding-3-small
EMBEDDING_DIMENSION: int = 1536


class NoteType(str, enum.Enum):
    """Kind of note; decides which classifier modality applies."""

    TEXT = "TEXT"
    IMAGE = "IMAGE"
    DOCUMENT = "DOCUMENT"


class User(Base, TimestampMixin):
    """
    Note owner.

    Attributes:
        id: UUID primary key.
        email: Unique login email.
        display_name: Name shown next to notes in retrieval results.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<User(id={self.id!s:.8}, email='{self.email}')>"


class Topic(Base, TimestampMixin):
    """
    User-owned topic that notes are classified into.

    Attributes:
        id: UUID primary key.
        owner_id: Owning user (CASCADE delete).
        name: Topic name shown to the classifier and in results.
        description: Free-form description written by the user.
        ai_summary: Model-written summary of the topic's notes.
        is_default: Classifier fallback; one per user.
    """

    __tablename__ = "topics"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    ai_summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    owner: Mapped[User] = relationship()

    def __repr__(self) -> str:
        return f"<Topic(id={self.id!s:.8}, name='{self.name}')>"


class Note(Base, TimestampMixin):
    """
    Note entity with vector embedding support.

    Attributes:
        id: UUID primary key.
        owner_id: Owning user.
        topic_id: Assigned topic; always owned by ``owner_id``.
        title: Note title (max 150 chars).
        description: Optional user-written description.
        ai_summary: Model-written summary (set by the note processor).
        type: TEXT, IMAGE or DOCUMENT.
        content: Body for TEXT; extracted description/rewrite for IMAGE/DOCUMENT.
        file_url: Path relative to the upload root (IMAGE/DOCUMENT only).
        embedding: 1536-dim vector (nullable until processed).
    """

    __tablename__ = "notes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    topic_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("topics.id"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(150), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    ai_summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[NoteType] = mapped_column(
        Enum(NoteType, name="note_type", native_enum=False, length=50),
        nullable=False,
    )
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    file_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    # Nullable: embedding is generated after the note is committed
    embedding: Mapped[list[float] | None] = mapped_column(
        Vector(EMBEDDING_DIMENSION),
        nullable=True,
        deferred=True,  # Never loaded with the row unless asked for
    )

    owner: Mapped[User] = relationship()
    topic: Mapped[Topic] = relationship()

    def __repr__(self) -> str:
        return f"<Note(id={self.id!s:.8}, type={self.type}, title='{self.title[:20]}')>"
