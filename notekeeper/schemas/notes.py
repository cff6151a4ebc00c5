"""
Note Schemas

Pydantic models for note projections and the retrieval endpoint.

The public API speaks camelCase (``topicId``, ``relevantNotes``); models accept
both the alias and the field name on input and serialise by alias.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from notekeeper.models.orm import NoteType


class NoteSnapshot(BaseModel):
    """
    Read-only projection of a note row without its embedding.

    Loaded by the note processor at the start of each event; the embedding
    column is never part of it.
    """

    id: UUID
    owner_id: UUID
    topic_id: UUID
    title: str
    description: str | None = None
    content: str | None = None
    ai_summary: str | None = None
    type: NoteType
    file_url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class TopicSnapshot(BaseModel):
    """Topic fields shown to the classifier."""

    id: UUID
    owner_id: UUID
    name: str
    description: str | None = None
    ai_summary: str | None = None
    is_default: bool = False

    model_config = ConfigDict(from_attributes=True)


class SimilarNote(NoteSnapshot):
    """A vector search hit: the note projection plus display fields and distance."""

    owner_display_name: str | None = None
    topic_name: str | None = None
    distance: float = Field(
        ge=0.0,
        le=2.0,
        description="Cosine distance (0 = identical)",
    )


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RetrieveNoteRequest(_CamelModel):
    """Request body for question answering over the caller's notes."""

    query: str = Field(
        ...,
        min_length=1,
        max_length=2000,
        description="Natural language question",
    )
    topic_id: UUID | None = Field(
        default=None,
        description="Restrict the search to one topic",
    )

    @field_validator("query")
    @classmethod
    def _query_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Query is required")
        return value


class NoteSummary(_CamelModel):
    """Public note shape returned with an answer. Never carries the embedding."""

    id: UUID
    title: str
    description: str | None = None
    type: NoteType
    owner_id: UUID
    owner_display_name: str | None = None
    topic_id: UUID | None = None
    topic_name: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    content: str | None = Field(default=None, description="TEXT notes only")
    file_url: str | None = Field(default=None, description="IMAGE/DOCUMENT notes only")

    @classmethod
    def from_hit(cls, hit: SimilarNote) -> NoteSummary:
        """Project a search hit, keeping only the body field its type exposes."""
        is_text = hit.type == NoteType.TEXT
        return cls(
            id=hit.id,
            title=hit.title,
            description=hit.description,
            type=hit.type,
            owner_id=hit.owner_id,
            owner_display_name=hit.owner_display_name,
            topic_id=hit.topic_id,
            topic_name=hit.topic_name,
            created_at=hit.created_at,
            updated_at=hit.updated_at,
            content=hit.content if is_text else None,
            file_url=None if is_text else hit.file_url,
        )


class RetrieveNoteResponse(_CamelModel):
    """Answer generated from the caller's most relevant notes."""

    answer: str = Field(description="Generated answer text")
    relevant_notes: list[NoteSummary] = Field(
        default_factory=list,
        description="Notes used as context, closest first",
    )
    notes_found: int = Field(default=0, ge=0, description="Number of notes used")
