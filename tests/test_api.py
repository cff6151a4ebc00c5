"""
HTTP Layer Unit Tests

Routers exercised through TestClient with dependency overrides: caller
identity, request validation, camelCase responses and error mapping.
The lifespan is not entered, so no database is touched.
"""

from __future__ import annotations

import uuid
from collections.abc import Generator
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from notekeeper.api.deps import get_embedder, get_retriever
from notekeeper.core.database import get_db
from notekeeper.core.exceptions import SystemFailure
from notekeeper.main import app
from notekeeper.models.orm import NoteType
from notekeeper.schemas.notes import NoteSummary, RetrieveNoteResponse

USER_ID = "00000000-0000-0000-0000-0000000000a1"
DB_SENTINEL = object()

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def retriever() -> AsyncMock:
    mock = AsyncMock()
    mock.retrieve.return_value = RetrieveNoteResponse(
        answer="No notes.", relevant_notes=[], notes_found=0
    )
    return mock


@pytest.fixture
def embedder(make_vector) -> AsyncMock:
    mock = AsyncMock()
    mock.embed.return_value = make_vector(0.1)
    return mock


@pytest.fixture
def client(retriever, embedder) -> Generator[TestClient, None, None]:
    async def _fake_db():
        yield DB_SENTINEL

    app.dependency_overrides[get_db] = _fake_db
    app.dependency_overrides[get_retriever] = lambda: retriever
    app.dependency_overrides[get_embedder] = lambda: embedder
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _headers(user_id: str = USER_ID) -> dict[str, str]:
    return {"X-User-Id": user_id}


# ---------------------------------------------------------------------------
# POST /api/v1/notes/retrieve
# ---------------------------------------------------------------------------


def test_retrieve_returns_camel_case(client, retriever, make_note):
    note = make_note(NoteType.IMAGE, content="described", file_url="u1/a.png")
    retriever.retrieve.return_value = RetrieveNoteResponse(
        answer="See Note 1.",
        relevant_notes=[
            NoteSummary(
                id=note.id,
                title=note.title,
                type=note.type,
                owner_id=note.owner_id,
                owner_display_name="Ada",
                topic_id=note.topic_id,
                topic_name="General",
                file_url=note.file_url,
            )
        ],
        notes_found=1,
    )
    topic_id = str(uuid.uuid4())

    res = client.post(
        "/api/v1/notes/retrieve",
        json={"query": "what chart?", "topicId": topic_id},
        headers=_headers(),
    )

    assert res.status_code == 200
    data = res.json()
    assert data["answer"] == "See Note 1."
    assert data["notesFound"] == 1
    hit = data["relevantNotes"][0]
    assert hit["fileUrl"] == "u1/a.png"
    assert hit["ownerDisplayName"] == "Ada"
    assert hit["topicName"] == "General"
    assert "embedding" not in hit

    db, query, passed_topic, user_id = retriever.retrieve.call_args.args
    assert db is DB_SENTINEL
    assert query == "what chart?"
    assert passed_topic == uuid.UUID(topic_id)
    assert user_id == uuid.UUID(USER_ID)


def test_retrieve_topic_is_optional(client, retriever):
    res = client.post(
        "/api/v1/notes/retrieve", json={"query": "milk"}, headers=_headers()
    )

    assert res.status_code == 200
    assert retriever.retrieve.call_args.args[2] is None


@pytest.mark.parametrize(
    "headers", [{}, {"X-User-Id": "not-a-uuid"}, {"X-User-Id": ""}]
)
def test_retrieve_requires_user(client, retriever, headers):
    res = client.post("/api/v1/notes/retrieve", json={"query": "milk"}, headers=headers)

    assert res.status_code == 401
    assert res.json()["status"] == "error"
    assert res.json()["code"] == "AUTH_UNAUTHORIZED"
    retriever.retrieve.assert_not_awaited()


@pytest.mark.parametrize(
    "body",
    [
        {},
        {"query": ""},
        {"query": "   "},
        {"query": "x" * 2001},
        {"query": "milk", "topicId": "nope"},
    ],
)
def test_retrieve_validates_body(client, retriever, body):
    res = client.post("/api/v1/notes/retrieve", json=body, headers=_headers())

    assert res.status_code == 422
    retriever.retrieve.assert_not_awaited()


def test_retrieve_query_embedding_failure(client, retriever):
    retriever.retrieve.side_effect = SystemFailure(
        "Failed to process your query. Please try again."
    )

    res = client.post(
        "/api/v1/notes/retrieve", json={"query": "milk"}, headers=_headers()
    )

    assert res.status_code == 500
    assert res.json() == {
        "status": "error",
        "code": "SYS_INTERNAL_ERROR",
        "message": "Failed to process your query. Please try again.",
    }


# ---------------------------------------------------------------------------
# POST /api/v1/embedding
# ---------------------------------------------------------------------------


def test_embedding_endpoint(client, embedder):
    res = client.post(
        "/api/v1/embedding", json={"content": "hello"}, headers=_headers()
    )

    assert res.status_code == 200
    data = res.json()
    assert data["dimensions"] == 1536
    assert len(data["embedding"]) == 1536
    embedder.embed.assert_awaited_once_with("hello")


def test_embedding_endpoint_model_failure(client, embedder):
    embedder.embed.return_value = None

    res = client.post(
        "/api/v1/embedding", json={"content": "hello"}, headers=_headers()
    )

    assert res.status_code == 502
    assert res.json()["code"] == "SYS_EXTERNAL_SERVICE_ERROR"


def test_embedding_endpoint_rejects_empty_content(client, embedder):
    res = client.post("/api/v1/embedding", json={"content": ""}, headers=_headers())

    assert res.status_code == 422
    embedder.embed.assert_not_awaited()
