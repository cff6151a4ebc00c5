"""
AI API Router

Endpoints:
    POST /embedding  — Embed a text with the configured embedding model.
"""

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends

from notekeeper.api.deps import get_current_user_id, get_embedder
from notekeeper.core.exceptions import ExternalServiceError
from notekeeper.schemas.ai import EmbeddingRequest, EmbeddingResponse
from notekeeper.services.embedder import BaseEmbedder

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/embedding",
    response_model=EmbeddingResponse,
    summary="Generate an embedding",
    responses={502: {"description": "Embedding model unavailable"}},
)
async def create_embedding(
    request: EmbeddingRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    embedder: BaseEmbedder = Depends(get_embedder),
) -> EmbeddingResponse:
    """Embed ``content`` and return the vector with its length."""
    embedding = await embedder.embed(request.content)
    if embedding is None:
        logger.warning("Embedding request from user %s failed", user_id)
        raise ExternalServiceError("Failed to generate embedding")
    return EmbeddingResponse(embedding=embedding, dimensions=len(embedding))
