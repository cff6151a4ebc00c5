"""
Note Repository

Data access layer for notes and topics with pgvector similarity search.

Notes are never loaded as full entities here: reads go through a column
projection that leaves out ``embedding``, and writes are targeted UPDATE
statements that set only the columns the caller knows. Methods do not commit;
the caller owns the transaction (``async with session.begin(): ...``).
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from typing import Any

from sqlalchemy import Row, Select, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from notekeeper.core.exceptions import ValidationError
from notekeeper.models.orm import EMBEDDING_DIMENSION, Note, Topic, User
from notekeeper.schemas.notes import NoteSnapshot, TopicSnapshot

logger = logging.getLogger(__name__)

# Everything except the embedding column
NOTE_COLUMNS = (
    Note.id,
    Note.owner_id,
    Note.topic_id,
    Note.title,
    Note.description,
    Note.content,
    Note.ai_summary,
    Note.type,
    Note.file_url,
    Note.created_at,
    Note.updated_at,
)


def _check_dimension(embedding: Sequence[float]) -> list[float]:
    """Reject vectors that would violate the vector(1536) column."""
    if len(embedding) != EMBEDDING_DIMENSION:
        raise ValidationError(
            f"Embedding must have {EMBEDDING_DIMENSION} dimensions, "
            f"got {len(embedding)}"
        )
    return [float(x) for x in embedding]


class NoteRepository:
    """
    Repository for note projections, targeted updates and vector search.

    Key guarantees:
        - Reads never touch the embedding column.
        - Each ``update_*`` method is a single UPDATE statement, so the
          columns it sets become visible together on commit.
        - ``find_similar_notes`` never crosses owner boundaries and never
          returns notes without an embedding.
    """

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    async def find_note_by_id(
        self,
        session: AsyncSession,
        note_id: uuid.UUID,
    ) -> NoteSnapshot | None:
        """Load the note projection, or None if the row does not exist."""
        result = await session.execute(select(*NOTE_COLUMNS).where(Note.id == note_id))
        row = result.first()
        if row is None:
            return None
        return NoteSnapshot.model_validate(dict(row._mapping))

    async def find_topics_by_owner(
        self,
        session: AsyncSession,
        owner_id: uuid.UUID,
    ) -> list[TopicSnapshot]:
        """All topics of a user, default topic first."""
        stmt = (
            select(Topic)
            .where(Topic.owner_id == owner_id)
            .order_by(Topic.is_default.desc(), Topic.created_at, Topic.id)
        )
        result = await session.execute(stmt)
        return [TopicSnapshot.model_validate(t) for t in result.scalars().all()]

    async def find_note_ids_missing_embedding(
        self,
        session: AsyncSession,
        owner_id: uuid.UUID | None = None,
        limit: int | None = None,
    ) -> Sequence[uuid.UUID]:
        """Ids of notes that are not yet searchable, oldest first."""
        stmt = select(Note.id).where(Note.embedding.is_(None))
        if owner_id is not None:
            stmt = stmt.where(Note.owner_id == owner_id)
        stmt = stmt.order_by(Note.created_at, Note.id)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await session.execute(stmt)
        return result.scalars().all()

    @staticmethod
    def similar_notes_statement(
        owner_id: uuid.UUID,
        topic_id: uuid.UUID | None,
        query_embedding: Sequence[float],
        limit: int,
        max_distance: float,
    ) -> Select[Any]:
        """
        Build the k-nearest query for one owner.

        ``<=>`` (cosine distance) ranges over [0, 2]; ``max_distance`` 0.6
        corresponds to similarity >= 0.7 under ``1 - distance / 2``.
        """
        distance = Note.embedding.cosine_distance(query_embedding)

        stmt = (
            select(
                *NOTE_COLUMNS,
                User.display_name.label("owner_display_name"),
                Topic.name.label("topic_name"),
                distance.label("distance"),
            )
            .join(User, User.id == Note.owner_id)
            .outerjoin(Topic, Topic.id == Note.topic_id)
            .where(Note.owner_id == owner_id)
            .where(Note.embedding.isnot(None))
            .where(distance <= max_distance)
        )
        if topic_id is not None:
            stmt = stmt.where(Note.topic_id == topic_id)

        # Note id breaks ties so equal distances come back in a stable order
        return stmt.order_by(distance, Note.id).limit(limit)

    async def find_similar_notes(
        self,
        session: AsyncSession,
        owner_id: uuid.UUID,
        topic_id: uuid.UUID | None,
        query_embedding: Sequence[float],
        limit: int = 5,
        max_distance: float = 0.6,
    ) -> Sequence[Row[Any]]:
        """
        Cosine-distance search over the owner's embedded notes.

        Returns:
            Raw rows (projection columns, ``owner_display_name``,
            ``topic_name``, ``distance``) ordered by ascending distance.
        """
        stmt = self.similar_notes_statement(
            owner_id,
            topic_id,
            _check_dimension(query_embedding),
            limit,
            max_distance,
        )
        result = await session.execute(stmt)
        return result.all()

    # ------------------------------------------------------------------
    # Write operations
    # ------------------------------------------------------------------

    async def _update(
        self,
        session: AsyncSession,
        note_id: uuid.UUID,
        **values: Any,
    ) -> None:
        await session.execute(update(Note).where(Note.id == note_id).values(**values))

    async def update_classification(
        self,
        session: AsyncSession,
        note_id: uuid.UUID,
        topic_id: uuid.UUID,
        ai_summary: str,
    ) -> None:
        """Set topic and summary."""
        await self._update(session, note_id, topic_id=topic_id, ai_summary=ai_summary)

    async def update_classification_with_content(
        self,
        session: AsyncSession,
        note_id: uuid.UUID,
        topic_id: uuid.UUID,
        ai_summary: str,
        content: str,
    ) -> None:
        """Set topic, summary and extracted content (IMAGE/DOCUMENT)."""
        await self._update(
            session,
            note_id,
            topic_id=topic_id,
            ai_summary=ai_summary,
            content=content,
        )

    async def update_classification_and_embedding(
        self,
        session: AsyncSession,
        note_id: uuid.UUID,
        topic_id: uuid.UUID,
        ai_summary: str,
        embedding: Sequence[float],
    ) -> None:
        """Set topic, summary and embedding (TEXT)."""
        await self._update(
            session,
            note_id,
            topic_id=topic_id,
            ai_summary=ai_summary,
            embedding=_check_dimension(embedding),
        )

    async def update_all(
        self,
        session: AsyncSession,
        note_id: uuid.UUID,
        topic_id: uuid.UUID,
        ai_summary: str,
        content: str,
        embedding: Sequence[float],
    ) -> None:
        """Set topic, summary, extracted content and embedding."""
        await self._update(
            session,
            note_id,
            topic_id=topic_id,
            ai_summary=ai_summary,
            content=content,
            embedding=_check_dimension(embedding),
        )

    async def update_embedding_and_summary(
        self,
        session: AsyncSession,
        note_id: uuid.UUID,
        embedding: Sequence[float],
        ai_summary: str | None,
    ) -> None:
        """Refresh embedding and summary after a content edit."""
        await self._update(
            session,
            note_id,
            embedding=_check_dimension(embedding),
            ai_summary=ai_summary,
        )

    async def update_embedding(
        self,
        session: AsyncSession,
        note_id: uuid.UUID,
        embedding: Sequence[float],
    ) -> None:
        """Overwrite only the embedding."""
        await self._update(session, note_id, embedding=_check_dimension(embedding))


# Module-level singleton for convenience imports
note_repository = NoteRepository()
