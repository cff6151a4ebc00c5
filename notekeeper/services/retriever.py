"""
Retriever

Answers a question from the caller's own notes:
embed query -> owner-scoped vector search -> answer synthesis.
"""

from __future__ import annotations

import logging
import uuid
from typing import Final

from sqlalchemy.ext.asyncio import AsyncSession

from notekeeper.core.exceptions import SystemFailure
from notekeeper.schemas.notes import NoteSummary, RetrieveNoteResponse
from notekeeper.services.classifier import Classifier
from notekeeper.services.embedder import Embedder, build_embedder
from notekeeper.services.vector_index import VectorIndex

logger = logging.getLogger(__name__)

NO_NOTES_ANSWER: Final[str] = (
    "I couldn't find any relevant notes to answer your question. "
    "Please try a different query or create more notes on this topic."
)
SYNTHESIS_ERROR_ANSWER: Final[str] = (
    "I encountered an error while processing your question. Please try again later."
)
QUERY_EMBEDDING_FAILED: Final[str] = "Failed to process your query. Please try again."


class Retriever:
    """
    Retrieval-augmented answering over one user's notes.

    Usage::

        retriever = Retriever()
        response = await retriever.retrieve(session, "What did I note about X?",
                                            None, user_id)
    """

    def __init__(
        self,
        embedder: Embedder | None = None,
        classifier: Classifier | None = None,
        index: VectorIndex | None = None,
    ) -> None:
        self._embedder = embedder or build_embedder()
        self._classifier = classifier or Classifier()
        self._index = index or VectorIndex()

    async def retrieve(
        self,
        session: AsyncSession,
        query: str,
        topic_id: uuid.UUID | None,
        user_id: uuid.UUID,
    ) -> RetrieveNoteResponse:
        """
        Answer ``query`` using at most k of ``user_id``'s notes.

        Raises:
            SystemFailure: If the query cannot be embedded.
        """
        logger.info("Retrieve for user %s: query='%s'", user_id, query[:50])

        query_embedding = await self._embedder.embed(query)
        if query_embedding is None:
            raise SystemFailure(QUERY_EMBEDDING_FAILED)

        hits = await self._index.search(session, user_id, topic_id, query_embedding)
        if not hits:
            return RetrieveNoteResponse(
                answer=NO_NOTES_ANSWER,
                relevant_notes=[],
                notes_found=0,
            )

        try:
            answer = await self._classifier.generate_answer(query, hits)
        except Exception:
            logger.exception("Answer synthesis failed for user %s", user_id)
            answer = SYNTHESIS_ERROR_ANSWER

        return RetrieveNoteResponse(
            answer=answer,
            relevant_notes=[NoteSummary.from_hit(hit) for hit in hits],
            notes_found=len(hits),
        )
