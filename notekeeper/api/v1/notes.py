"""
Notes API Router

Endpoints:
    POST /retrieve  — Answer a question from the caller's own notes.
"""

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from notekeeper.api.deps import get_current_user_id, get_retriever
from notekeeper.core.database import get_db
from notekeeper.schemas.notes import RetrieveNoteRequest, RetrieveNoteResponse
from notekeeper.services.retriever import Retriever

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/retrieve",
    response_model=RetrieveNoteResponse,
    summary="Ask a question about your notes",
    responses={
        401: {"description": "Missing or invalid caller identity"},
        500: {"description": "The query could not be embedded"},
    },
)
async def retrieve_notes(
    request: RetrieveNoteRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    retriever: Retriever = Depends(get_retriever),
) -> RetrieveNoteResponse:
    """
    Answer a question using the caller's most relevant notes.

    Process:
        1. Embed the query.
        2. Find up to k of the caller's notes within the distance threshold,
           optionally restricted to ``topicId``.
        3. Generate an answer that cites the notes as "Note 1", "Note 2", ...

    When nothing relevant is found, a fixed explanatory answer is returned
    with ``notesFound = 0``.
    """
    response = await retriever.retrieve(db, request.query, request.topic_id, user_id)
    logger.info("Retrieve for user %s used %d notes", user_id, response.notes_found)
    return response
