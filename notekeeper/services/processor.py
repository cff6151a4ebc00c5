"""
Note Processor

Enriches notes after they are committed: classify -> embed -> persist.

Each event is handled in its own session:
    1. A short read transaction loads the note projection and the owner's
       topics (once per event).
    2. The model calls run with no transaction open.
    3. One write transaction issues exactly one targeted UPDATE.

Any exception is logged with the note id and stops that event only; the
write transaction rolls back, so a note never receives half an update.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from notekeeper.core.database import get_session_factory
from notekeeper.events.schemas import NoteContentUpdated, NoteCreated, NoteEvent
from notekeeper.models.orm import NoteType
from notekeeper.repositories.notes import NoteRepository, note_repository
from notekeeper.schemas.ai import ClassificationResult
from notekeeper.schemas.notes import NoteSnapshot, TopicSnapshot
from notekeeper.services.classifier import Classifier
from notekeeper.services.embedder import Embedder, build_embedder

logger = logging.getLogger(__name__)


def has_extracted_content(note: NoteSnapshot, result: ClassificationResult) -> bool:
    """True only for IMAGE/DOCUMENT notes whose classifier returned content."""
    return note.type != NoteType.TEXT and result.has_content


def content_to_embed(note: NoteSnapshot, result: ClassificationResult) -> str | None:
    """Note body for TEXT, extracted content for IMAGE/DOCUMENT."""
    text = note.content if note.type == NoteType.TEXT else result.content
    if text is None or not text.strip():
        return None
    return text


class NoteProcessor:
    """
    Background enrichment of notes.

    Usage::

        processor = NoteProcessor()
        await processor.handle(NoteCreated(note_id))
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        repository: NoteRepository | None = None,
        classifier: Classifier | None = None,
        embedder: Embedder | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._repository = repository or note_repository
        self._classifier = classifier or Classifier()
        self._embedder = embedder or build_embedder()

    def _factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            self._session_factory = get_session_factory()
        return self._session_factory

    async def handle(self, event: NoteEvent) -> None:
        """Run the pipeline for one event; never raises."""
        try:
            if isinstance(event, NoteCreated):
                await self.process_note_created(event.note_id)
            elif isinstance(event, NoteContentUpdated):
                await self.process_content_updated(event.note_id, event.new_content)
            else:
                logger.warning("Ignoring unknown event %r", event)
        except Exception:
            logger.exception(
                "Processing %s failed for note %s",
                type(event).__name__,
                event.note_id,
            )

    async def _load(
        self,
        session: AsyncSession,
        note_id: uuid.UUID,
    ) -> tuple[NoteSnapshot | None, Sequence[TopicSnapshot]]:
        async with session.begin():
            note = await self._repository.find_note_by_id(session, note_id)
            if note is None:
                return None, []
            topics = await self._repository.find_topics_by_owner(session, note.owner_id)
        return note, topics

    # ------------------------------------------------------------------
    # NoteCreated
    # ------------------------------------------------------------------

    async def process_note_created(self, note_id: uuid.UUID) -> str | None:
        """
        Classify, embed and persist a freshly created note.

        Steps:
            1. Load the note (without embedding) and the owner's topics.
            2. Classify; skip the note if the owner has no topics.
            3. Embed the note body (TEXT) or the extracted content.
            4. Write one of four targeted updates.

        Returns:
            The name of the update that was written, or None when the note
            was skipped (missing note, no topics, no classification).
        """
        session_factory = self._factory()
        async with session_factory() as session:
            note, topics = await self._load(session, note_id)
            if note is None:
                logger.warning("Note %s not found, skipping", note_id)
                return None
            if not topics:
                logger.warning(
                    "Note %s: owner %s has no topics, skipping",
                    note_id,
                    note.owner_id,
                )
                return None

            result = await self._classifier.classify_note(note, topics)
            if result is None:
                logger.warning("Note %s: no classification result, skipping", note_id)
                return None

            text = content_to_embed(note, result)
            embedding = await self._embedder.embed(text) if text else None

            async with session.begin():
                pattern = await self._persist(session, note, result, embedding)

        logger.info(
            "Note %s processed (type=%s, topic=%s, update=%s, failed=%s)",
            note_id,
            note.type.value,
            result.topic_id,
            pattern,
            result.failed,
        )
        return pattern

    async def _persist(
        self,
        session: AsyncSession,
        note: NoteSnapshot,
        result: ClassificationResult,
        embedding: list[float] | None,
    ) -> str:
        """Pick the update that matches what succeeded; returns its name."""
        repo = self._repository
        content = result.content if has_extracted_content(note, result) else None

        if content is not None:
            if embedding is not None:
                await repo.update_all(
                    session,
                    note.id,
                    result.topic_id,
                    result.ai_summary,
                    content,
                    embedding,
                )
                return "all"
            await repo.update_classification_with_content(
                session,
                note.id,
                result.topic_id,
                result.ai_summary,
                content,
            )
            return "classification_with_content"

        if embedding is not None:
            await repo.update_classification_and_embedding(
                session,
                note.id,
                result.topic_id,
                result.ai_summary,
                embedding,
            )
            return "classification_and_embedding"

        await repo.update_classification(
            session,
            note.id,
            result.topic_id,
            result.ai_summary,
        )
        return "classification"

    # ------------------------------------------------------------------
    # NoteContentUpdated
    # ------------------------------------------------------------------

    async def process_content_updated(
        self,
        note_id: uuid.UUID,
        new_content: str,
    ) -> None:
        """
        Re-embed edited content and refresh the summary.

        The topic is left as it is. The summary comes from a text-only
        classification of the new content; if that fails the previous
        summary is kept. Without an embedding nothing is written.
        """
        session_factory = self._factory()
        async with session_factory() as session:
            note, topics = await self._load(session, note_id)
            if note is None:
                logger.warning("Note %s not found, skipping content update", note_id)
                return

            embedding = await self._embedder.embed(new_content)
            if embedding is None:
                logger.warning("Note %s: edited content could not be embedded", note_id)
                return

            ai_summary = note.ai_summary
            if topics:
                edited = note.model_copy(update={"content": new_content})
                result = await self._classifier.classify_note(
                    edited,
                    topics,
                    force_text=True,
                )
                if result is not None and not result.failed:
                    ai_summary = result.ai_summary

            async with session.begin():
                await self._repository.update_embedding_and_summary(
                    session,
                    note_id,
                    embedding,
                    ai_summary,
                )

        logger.info("Note %s re-indexed after content edit", note_id)


def build_note_processor() -> NoteProcessor:
    """Processor wired to the application database and model clients."""
    return NoteProcessor(session_factory=get_session_factory())
