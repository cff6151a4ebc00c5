"""
AI Schemas

Data structures exchanged with the model clients: classification results,
inline media attachments and the raw embedding endpoint.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from pydantic import BaseModel, Field


@dataclass(frozen=True)
class MediaAttachment:
    """File bytes sent inline with a chat prompt."""

    data: bytes
    mime_type: str
    filename: str

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith("image/")


@dataclass(frozen=True)
class ClassificationResult:
    """
    Validated classifier output.

    Attributes:
        topic_id: Always one of the owner's topic ids.
        ai_summary: Summary text ("" when the model omitted it).
        content: Extracted description/rewrite (IMAGE/DOCUMENT only).
        failed: True for the synthetic result produced after both
            modalities raised.
    """

    topic_id: UUID
    ai_summary: str
    content: str | None = None
    failed: bool = False

    @property
    def has_content(self) -> bool:
        return bool(self.content and self.content.strip())


class EmbeddingRequest(BaseModel):
    """Request body for the raw embedding endpoint."""

    content: str = Field(..., min_length=1, description="Text to embed")


class EmbeddingResponse(BaseModel):
    """Embedding vector and its length."""

    embedding: list[float]
    dimensions: int
