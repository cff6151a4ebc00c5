"""
Classifier Service

Chooses a topic, writes a short summary and, for image and document notes,
extracts a text rendition of the attached file. Also synthesises answers for
the retriever from the same chat model.

Modalities:
    - text:     metadata + note content, no attachment.
    - image:    metadata + the image bytes (IMAGE notes within the size cap).
    - document: metadata + the PDF bytes (DOCUMENT notes within the size cap).

Degradation:
    - Missing, oversized or non-PDF file -> text modality with metadata only;
      IMAGE/DOCUMENT notes still get a description inferred from metadata.
    - Any error in file modality -> one retry in text modality.
    - Error in text modality -> synthetic result on the default topic.
    - Malformed model output -> default topic, empty summary.
"""

from __future__ import annotations

import json
import logging
import re
import uuid
from collections.abc import Sequence
from typing import Any, Final

from notekeeper.core.config import settings
from notekeeper.models.orm import NoteType
from notekeeper.schemas.ai import ClassificationResult, MediaAttachment
from notekeeper.schemas.notes import NoteSnapshot, SimilarNote, TopicSnapshot
from notekeeper.services import prompts
from notekeeper.services.llm import ChatClient, build_chat_client
from notekeeper.services.storage import (
    DOCUMENT_MIME_TYPES,
    UploadStorage,
    guess_mime_type,
)

logger = logging.getLogger(__name__)

CLASSIFY_TEMPERATURE: Final[float] = 0.3
CLASSIFY_MAX_TOKENS: Final[int] = 2000
ANSWER_TEMPERATURE: Final[float] = 0.3
ANSWER_MAX_TOKENS: Final[int] = 500

_LEADING_FENCE = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_TRAILING_FENCE = re.compile(r"\s*```$")


def default_topic(topics: Sequence[TopicSnapshot]) -> TopicSnapshot:
    """The owner's default topic, or the first one if none is flagged."""
    for topic in topics:
        if topic.is_default:
            return topic
    return topics[0]


def strip_code_fences(raw: str) -> str:
    """Remove surrounding whitespace and one optional Markdown code fence."""
    text = raw.strip()
    text = _LEADING_FENCE.sub("", text)
    text = _TRAILING_FENCE.sub("", text)
    return text.strip()


def parse_model_json(raw: str) -> dict[str, Any] | None:
    """Lenient JSON object parse; None when the output is not an object."""
    try:
        data = json.loads(strip_code_fences(raw))
    except (json.JSONDecodeError, TypeError):
        return None
    return data if isinstance(data, dict) else None


class Classifier:
    """
    Note classification and answer synthesis over a chat model.

    Usage::

        classifier = Classifier()
        result = await classifier.classify_note(note, topics)
        if result is not None:
            print(result.topic_id, result.ai_summary)
    """

    def __init__(
        self,
        chat_client: ChatClient | None = None,
        storage: UploadStorage | None = None,
        max_image_bytes: int | None = None,
        max_document_bytes: int | None = None,
    ) -> None:
        self._chat = chat_client or build_chat_client()
        self._storage = storage or UploadStorage()
        self._max_image_bytes = max_image_bytes or settings.CLASSIFIER_MAX_IMAGE_BYTES
        self._max_document_bytes = (
            max_document_bytes or settings.CLASSIFIER_MAX_DOCUMENT_BYTES
        )

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    async def classify_note(
        self,
        note: NoteSnapshot,
        topics: Sequence[TopicSnapshot],
        *,
        force_text: bool = False,
    ) -> ClassificationResult | None:
        """
        Classify a note against its owner's topics.

        Args:
            note: Current note projection.
            topics: The owner's topics (at least one expected).
            force_text: Skip the file modality even for IMAGE/DOCUMENT.

        Returns:
            A result whose ``topic_id`` is always one of ``topics``, or None
            when the owner has no topics.
        """
        if not topics:
            logger.warning("Note %s: owner has no topics, not classified", note.id)
            return None

        if note.type != NoteType.TEXT and not force_text:
            try:
                attachment = await self._load_attachment(note)
                if attachment is not None:
                    return await self._classify(note, topics, attachment)
            except Exception as e:
                logger.warning(
                    "Note %s: %s classification failed, retrying with text only: %s",
                    note.id,
                    note.type.value,
                    e,
                )

        try:
            return await self._classify(note, topics, None)
        except Exception as e:
            logger.error("Note %s: text classification failed: %s", note.id, e)
            return ClassificationResult(
                topic_id=default_topic(topics).id,
                ai_summary=f"Error during classification: {e}",
                content=None,
                failed=True,
            )

    def _size_cap(self, note_type: NoteType) -> int:
        if note_type == NoteType.IMAGE:
            return self._max_image_bytes
        return self._max_document_bytes

    async def _load_attachment(self, note: NoteSnapshot) -> MediaAttachment | None:
        """
        Read the note's file if it exists and fits the cap.

        Returns None (text modality) for a missing path, a non-PDF document,
        a missing file or an oversized file. Raises on path or read errors.
        """
        if not note.file_url:
            logger.info("Note %s: no file path, using text modality", note.id)
            return None

        path = self._storage.resolve(note.file_url)
        mime_type = guess_mime_type(path.name)
        is_pdf = mime_type in DOCUMENT_MIME_TYPES.values()
        if note.type == NoteType.DOCUMENT and not is_pdf:
            logger.info(
                "Note %s: %s is not a PDF, using text modality", note.id, path.name
            )
            return None

        size = self._storage.size_of(path)
        if size is None:
            logger.warning(
                "Note %s: file not found at %s, using text modality",
                note.id,
                path,
            )
            return None

        cap = self._size_cap(note.type)
        if size > cap:
            logger.info(
                "Note %s: file is %d bytes (cap %d), using text modality",
                note.id,
                size,
                cap,
            )
            return None

        data = await self._storage.read_bytes(path)
        return MediaAttachment(
            data=data,
            mime_type=mime_type,
            filename=path.name,
        )

    async def _classify(
        self,
        note: NoteSnapshot,
        topics: Sequence[TopicSnapshot],
        attachment: MediaAttachment | None,
    ) -> ClassificationResult:
        with_attachment = attachment is not None
        raw = await self._chat.complete(
            prompts.classification_system_prompt(note.type, with_attachment),
            prompts.classification_user_prompt(note, topics, with_attachment),
            media=attachment,
            temperature=CLASSIFY_TEMPERATURE,
            max_tokens=CLASSIFY_MAX_TOKENS,
        )
        return self._validate(raw, note, topics)

    def _validate(
        self,
        raw: str,
        note: NoteSnapshot,
        topics: Sequence[TopicSnapshot],
    ) -> ClassificationResult:
        """Turn raw model output into a result that satisfies the topic invariant."""
        data = parse_model_json(raw)
        if data is None:
            logger.warning("Note %s: unparseable classifier output", note.id)
            data = {}

        topic_id = self._resolve_topic_id(data.get("topicId"), topics)
        if topic_id is None:
            topic_id = default_topic(topics).id
            logger.info("Note %s: unknown topicId, using default topic", note.id)

        summary = data.get("aiSummary")
        ai_summary = summary.strip() if isinstance(summary, str) else ""

        content: str | None = None
        # TEXT bodies belong to the user and are never replaced
        if note.type != NoteType.TEXT:
            value = data.get("content")
            if isinstance(value, str) and value.strip():
                content = value.strip()

        return ClassificationResult(
            topic_id=topic_id,
            ai_summary=ai_summary,
            content=content,
        )

    @staticmethod
    def _resolve_topic_id(
        value: Any,
        topics: Sequence[TopicSnapshot],
    ) -> uuid.UUID | None:
        if value is None:
            return None
        try:
            candidate = uuid.UUID(str(value).strip())
        except ValueError:
            return None
        return candidate if any(t.id == candidate for t in topics) else None

    # ------------------------------------------------------------------
    # Answer synthesis
    # ------------------------------------------------------------------

    async def generate_answer(self, query: str, notes: Sequence[SimilarNote]) -> str:
        """
        Answer ``query`` from the given notes only.

        Raises:
            Whatever the chat client raises; the retriever degrades.
        """
        answer = await self._chat.complete(
            prompts.ANSWER_SYSTEM_PROMPT,
            prompts.answer_user_prompt(query, notes),
            temperature=ANSWER_TEMPERATURE,
            max_tokens=ANSWER_MAX_TOKENS,
        )
        return answer.strip()
