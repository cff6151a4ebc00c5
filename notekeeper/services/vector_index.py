"""
Vector Index

Adapter over the ``notes.embedding`` pgvector column: overwrite one vector,
run owner-scoped k-nearest search with a distance ceiling.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from notekeeper.core.config import settings
from notekeeper.repositories.notes import NoteRepository, note_repository
from notekeeper.schemas.notes import SimilarNote

logger = logging.getLogger(__name__)


class VectorIndex:
    """
    Owner-scoped similarity search over note embeddings.

    Usage::

        index = VectorIndex()
        hits = await index.search(session, user_id, None, query_vec)
        for hit in hits:
            print(hit.title, hit.distance)
    """

    def __init__(
        self,
        repository: NoteRepository | None = None,
        k: int | None = None,
        max_distance: float | None = None,
    ) -> None:
        self._repository = repository or note_repository
        self._k = k or settings.RETRIEVAL_K
        if max_distance is None:
            max_distance = settings.RETRIEVAL_MAX_DISTANCE
        self._max_distance = max_distance

    @property
    def k(self) -> int:
        return self._k

    @property
    def max_distance(self) -> float:
        return self._max_distance

    async def upsert_embedding(
        self,
        session: AsyncSession,
        note_id: uuid.UUID,
        embedding: Sequence[float],
    ) -> None:
        """Overwrite the note's vector. Does not commit."""
        await self._repository.update_embedding(session, note_id, embedding)

    async def search(
        self,
        session: AsyncSession,
        owner_id: uuid.UUID,
        topic_id: uuid.UUID | None,
        query_embedding: Sequence[float],
        k: int | None = None,
    ) -> list[SimilarNote]:
        """
        Closest notes of one owner, nearest first.

        Args:
            session: Active async database session.
            owner_id: Only this user's notes are searched.
            topic_id: Optional topic restriction.
            query_embedding: 1536-dim query vector.
            k: Result limit (default ``RETRIEVAL_K``).

        Returns:
            At most ``k`` hits with ``distance <= max_distance``.
        """
        rows = await self._repository.find_similar_notes(
            session,
            owner_id,
            topic_id,
            query_embedding,
            limit=k or self._k,
            max_distance=self._max_distance,
        )
        hits = [SimilarNote.model_validate(dict(row._mapping)) for row in rows]
        logger.debug("Vector search for owner %s returned %d hits", owner_id, len(hits))
        return hits
