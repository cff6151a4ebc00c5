"""
Prompt Templates

System and user prompts for note classification and answer synthesis.
Builders take plain projections and return strings; no I/O happens here.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import PurePosixPath
from typing import Final

from notekeeper.models.orm import NoteType
from notekeeper.schemas.notes import NoteSnapshot, SimilarNote, TopicSnapshot

_CLASSIFY_BASE: Final[str] = """You are an assistant that organizes personal notes into topics.

Pick the single best topic for the note from the list of available topics.

Rules:
1. "topicId" MUST be one of the ids listed under AVAILABLE TOPICS.
2. If no topic clearly fits, use the topic marked as default.
3. "aiSummary" is a concise summary of the note: 2-3 sentences, at most 200 characters.
4. Answer with a bare JSON object only. Do not wrap it in code fences and do not add any text before or after it.
"""

_TEXT_FORMAT: Final[str] = """
Response format:
{"topicId": "<topic id>", "aiSummary": "<summary>"}
"""

_IMAGE_FORMAT: Final[str] = """
An image is attached. Look at it carefully before choosing the topic.
5. "content" is a description of the image in 3-5 sentences: what it shows, any visible text, and the context it suggests.

Response format:
{"topicId": "<topic id>", "aiSummary": "<summary>", "content": "<image description>"}
"""

_DOCUMENT_FORMAT: Final[str] = """
A PDF document is attached. Read all of it before choosing the topic.
5. "content" is a complete, well-structured rewrite of the document: keep every section and the important details, use headings and lists where they help.

Response format:
{"topicId": "<topic id>", "aiSummary": "<summary>", "content": "<document rewrite>"}
"""

_METADATA_FORMAT: Final[str] = """
The {kind} itself is not attached; only the note metadata below is available.
5. "content" is a short description of what the {kind} most likely contains, in 2-3 sentences, based only on the metadata. Leave "content" out when the metadata says nothing about it. Do not invent details.

Response format:
{{"topicId": "<topic id>", "aiSummary": "<summary>", "content": "<description from metadata>"}}
"""

ANSWER_SYSTEM_PROMPT: Final[str] = """You are an assistant that answers questions about the user's own notes.

Rules:
1. Use ONLY the notes given in the context. Never invent information.
2. Cite the notes you rely on by their number, for example "Note 1" or "Note 2".
3. If the context does not contain the answer, say so clearly.
4. Answer in 2-4 sentences.
"""


def classification_system_prompt(note_type: NoteType, with_attachment: bool) -> str:
    """
    System prompt for the classifier.

    IMAGE and DOCUMENT notes always ask for ``content``; without the file
    attached it is a description inferred from the metadata.
    """
    if note_type == NoteType.TEXT:
        return _CLASSIFY_BASE + _TEXT_FORMAT
    if not with_attachment:
        kind = "image" if note_type == NoteType.IMAGE else "document"
        return _CLASSIFY_BASE + _METADATA_FORMAT.format(kind=kind)
    if note_type == NoteType.IMAGE:
        return _CLASSIFY_BASE + _IMAGE_FORMAT
    return _CLASSIFY_BASE + _DOCUMENT_FORMAT


def file_name_of(file_url: str | None) -> str | None:
    """Last path segment of a stored file path."""
    if not file_url:
        return None
    return PurePosixPath(file_url.replace("\\", "/")).name or None


def _topics_block(topics: Sequence[TopicSnapshot]) -> str:
    lines: list[str] = []
    for topic in topics:
        lines.append(f"- id: {topic.id}")
        lines.append(f"  name: {topic.name}")
        if topic.description:
            lines.append(f"  description: {topic.description}")
        if topic.ai_summary:
            lines.append(f"  aiSummary: {topic.ai_summary}")
        if topic.is_default:
            lines.append("  default: true")
    return "\n".join(lines)


def classification_user_prompt(
    note: NoteSnapshot,
    topics: Sequence[TopicSnapshot],
    with_attachment: bool,
) -> str:
    """
    User prompt: metadata block, content block, topics block.

    The content block is left out when the file itself is attached.
    """
    parts = ["NOTE METADATA:", f"Title: {note.title}"]
    if note.description:
        parts.append(f"Description: {note.description}")
    parts.append(f"Type: {note.type.value}")
    file_name = file_name_of(note.file_url)
    if file_name:
        parts.append(f"File name: {file_name}")

    if not with_attachment and note.content and note.content.strip():
        parts.extend(["", "NOTE CONTENT:", note.content])

    parts.extend(["", "AVAILABLE TOPICS:", _topics_block(topics)])
    return "\n".join(parts)


def answer_context(notes: Sequence[SimilarNote]) -> str:
    """Numbered context block, one entry per hit in ranking order."""
    blocks: list[str] = []
    for i, note in enumerate(notes, 1):
        lines = [f"Note {i}:", f"Title: {note.title}"]
        if note.topic_name:
            lines.append(f"Topic: {note.topic_name}")
        if note.ai_summary:
            lines.append(f"Summary: {note.ai_summary}")
        if note.content:
            lines.append(f"Content: {note.content}")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def answer_user_prompt(query: str, notes: Sequence[SimilarNote]) -> str:
    return f"CONTEXT:\n{answer_context(notes)}\n\nQUESTION: {query}"
