"""
Pytest Configuration and Fixtures

Offline fakes for the database session and the note repository, sample
users/topics/notes, plus the session-scoped fixtures used by the live tests
against a running stack.
"""

import os

from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Test environment defaults: MUST be before any notekeeper imports.
#
# 1. Load .env first so that local credentials are available.
# 2. setdefault fills in anything still missing (CI runners, fresh clones
#    without a .env file) so that pydantic Settings validation doesn't crash.
# ---------------------------------------------------------------------------
load_dotenv()  # .env → os.environ (no-op if file is missing)

_test_env = {
    "POSTGRES_USER": "notekeeper",
    "POSTGRES_PASSWORD": "notekeeper_password",
    "POSTGRES_HOST": "localhost",
    "POSTGRES_PORT": "5432",
    "POSTGRES_DB": "notekeeper_db",
    "OPENAI_API_KEY": "mock",
}
for _key, _value in _test_env.items():
    os.environ.setdefault(_key, _value)

# ---------------------------------------------------------------------------
# Imports (safe now that env vars are set)
# ---------------------------------------------------------------------------
import time  # noqa: E402
import uuid  # noqa: E402
from collections.abc import Generator  # noqa: E402
from dataclasses import dataclass, field  # noqa: E402
from datetime import datetime, timezone  # noqa: E402
from typing import Any  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402

from notekeeper.models.orm import EMBEDDING_DIMENSION, NoteType  # noqa: E402
from notekeeper.schemas.notes import NoteSnapshot, TopicSnapshot  # noqa: E402

BASE_URL = "http://localhost:8000"


def vector(value: float = 0.1) -> list[float]:
    """A valid 1536-dim embedding filled with ``value``."""
    return [value] * EMBEDDING_DIMENSION


# ---------------------------------------------------------------------------
# Fake session / transaction
# ---------------------------------------------------------------------------


class FakeTransaction:
    """``session.begin()`` stand-in: commits staged writes or drops them."""

    def __init__(self, session: "FakeSession") -> None:
        self._session = session

    async def __aenter__(self) -> "FakeTransaction":
        assert not self._session.in_transaction, "nested begin() on one session"
        self._session.in_transaction = True
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        self._session.in_transaction = False
        if exc_type is None:
            self._session.store.committed.extend(self._session.staged)
            self._session.commits += 1
        else:
            self._session.rollbacks += 1
        self._session.staged.clear()
        return False


class FakeSession:
    """Minimal AsyncSession: transactions, ``info`` and staged writes."""

    def __init__(self, store: "FakeSessionFactory") -> None:
        self.store = store
        self.info: dict[str, Any] = {}
        self.staged: list[tuple[str, dict[str, Any]]] = []
        self.in_transaction = False
        self.commits = 0
        self.rollbacks = 0
        self.closed = False

    def begin(self) -> FakeTransaction:
        return FakeTransaction(self)

    async def __aenter__(self) -> "FakeSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        self.closed = True
        return False


class FakeSessionFactory:
    """``async_sessionmaker`` stand-in recording committed writes."""

    def __init__(self) -> None:
        self.sessions: list[FakeSession] = []
        self.committed: list[tuple[str, dict[str, Any]]] = []

    def __call__(self) -> FakeSession:
        session = FakeSession(self)
        self.sessions.append(session)
        return session

    @property
    def rollbacks(self) -> int:
        return sum(s.rollbacks for s in self.sessions)


# ---------------------------------------------------------------------------
# Fake repository
# ---------------------------------------------------------------------------


@dataclass
class FakeRow:
    """Mimics a SQLAlchemy Row: exposes ``_mapping``."""

    _mapping: dict[str, Any]


@dataclass
class FakeNoteRepository:
    """
    In-memory NoteRepository.

    Updates are staged on the session and only land in
    ``FakeSessionFactory.committed`` when the transaction commits.
    """

    notes: dict[uuid.UUID, NoteSnapshot] = field(default_factory=dict)
    topics: dict[uuid.UUID, list[TopicSnapshot]] = field(default_factory=dict)
    # (note, display name, topic name, distance) used by find_similar_notes
    indexed: list[tuple[NoteSnapshot, str, str | None, float]] = field(
        default_factory=list
    )
    search_calls: list[dict[str, Any]] = field(default_factory=list)
    fail_on_update: Exception | None = None

    async def find_note_by_id(self, session, note_id):
        assert session.in_transaction
        return self.notes.get(note_id)

    async def find_topics_by_owner(self, session, owner_id):
        return list(self.topics.get(owner_id, []))

    async def find_similar_notes(
        self,
        session,
        owner_id,
        topic_id,
        query_embedding,
        limit=5,
        max_distance=0.6,
    ):
        self.search_calls.append(
            {
                "owner_id": owner_id,
                "topic_id": topic_id,
                "limit": limit,
                "max_distance": max_distance,
            }
        )
        hits = [
            (note, name, topic, d)
            for note, name, topic, d in self.indexed
            if note.owner_id == owner_id
            and d <= max_distance
            and (topic_id is None or note.topic_id == topic_id)
        ]
        hits.sort(key=lambda h: (h[3], str(h[0].id)))
        return [
            FakeRow(
                {
                    **note.model_dump(),
                    "owner_display_name": name,
                    "topic_name": topic,
                    "distance": d,
                }
            )
            for note, name, topic, d in hits[:limit]
        ]

    def _stage(self, session, name: str, **values: Any) -> None:
        assert session.in_transaction, f"{name} called outside a transaction"
        if self.fail_on_update is not None:
            raise self.fail_on_update
        embedding = values.get("embedding")
        if embedding is not None:
            assert len(embedding) == EMBEDDING_DIMENSION
        session.staged.append((name, values))

    async def update_classification(self, session, note_id, topic_id, ai_summary):
        self._stage(
            session,
            "update_classification",
            note_id=note_id,
            topic_id=topic_id,
            ai_summary=ai_summary,
        )

    async def update_classification_with_content(
        self, session, note_id, topic_id, ai_summary, content
    ):
        self._stage(
            session,
            "update_classification_with_content",
            note_id=note_id,
            topic_id=topic_id,
            ai_summary=ai_summary,
            content=content,
        )

    async def update_classification_and_embedding(
        self, session, note_id, topic_id, ai_summary, embedding
    ):
        self._stage(
            session,
            "update_classification_and_embedding",
            note_id=note_id,
            topic_id=topic_id,
            ai_summary=ai_summary,
            embedding=embedding,
        )

    async def update_all(
        self,
        session,
        note_id,
        topic_id,
        ai_summary,
        content,
        embedding,
    ):
        self._stage(
            session,
            "update_all",
            note_id=note_id,
            topic_id=topic_id,
            ai_summary=ai_summary,
            content=content,
            embedding=embedding,
        )

    async def update_embedding_and_summary(
        self,
        session,
        note_id,
        embedding,
        ai_summary,
    ):
        self._stage(
            session,
            "update_embedding_and_summary",
            note_id=note_id,
            embedding=embedding,
            ai_summary=ai_summary,
        )

    async def update_embedding(self, session, note_id, embedding):
        self._stage(session, "update_embedding", note_id=note_id, embedding=embedding)


# ---------------------------------------------------------------------------
# Sample data
# ---------------------------------------------------------------------------


@pytest.fixture
def owner_id() -> uuid.UUID:
    return uuid.UUID("00000000-0000-0000-0000-0000000000a1")


@pytest.fixture
def other_owner_id() -> uuid.UUID:
    return uuid.UUID("00000000-0000-0000-0000-0000000000b2")


@pytest.fixture
def default_topic(owner_id) -> TopicSnapshot:
    return TopicSnapshot(
        id=uuid.UUID("00000000-0000-0000-0000-00000000d0f0"),
        owner_id=owner_id,
        name="General",
        description="Everything else",
        is_default=True,
    )


@pytest.fixture
def shopping_topic(owner_id) -> TopicSnapshot:
    return TopicSnapshot(
        id=uuid.UUID("00000000-0000-0000-0000-00000000540b"),
        owner_id=owner_id,
        name="Shopping",
        description="Groceries and errands",
        ai_summary="Lists of things to buy.",
    )


@pytest.fixture
def topics(default_topic, shopping_topic) -> list[TopicSnapshot]:
    return [default_topic, shopping_topic]


@pytest.fixture
def make_note(owner_id, default_topic):
    """Factory for note projections owned by ``owner_id``."""

    def _make(
        note_type: NoteType = NoteType.TEXT,
        title: str = "Grocery list",
        content: str | None = "buy milk eggs bread",
        file_url: str | None = None,
        **overrides: Any,
    ) -> NoteSnapshot:
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        values: dict[str, Any] = {
            "id": uuid.uuid4(),
            "owner_id": owner_id,
            "topic_id": default_topic.id,
            "title": title,
            "description": None,
            "content": content,
            "ai_summary": None,
            "type": note_type,
            "file_url": file_url,
            "created_at": now,
            "updated_at": now,
        }
        values.update(overrides)
        return NoteSnapshot(**values)

    return _make


@pytest.fixture
def session_factory() -> FakeSessionFactory:
    return FakeSessionFactory()


@pytest.fixture
def repository(owner_id, topics) -> FakeNoteRepository:
    repo = FakeNoteRepository()
    repo.topics[owner_id] = list(topics)
    return repo


@pytest.fixture
def make_vector():
    """Factory for valid 1536-dim embeddings."""
    return vector


# ---------------------------------------------------------------------------
# Live stack fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def wait_for_api():
    """
    Block until the API is ready or timeout expires.

    Polls /health endpoint with 1s intervals for up to 30s.
    Fails the test session if API is unreachable (stack likely not running).
    """
    url = f"{BASE_URL}/health"
    timeout = 30
    start = time.time()

    print("\n[Test] Waiting for API...")
    while time.time() - start < timeout:
        try:
            res = httpx.get(url, timeout=1.0)
            if res.status_code == 200:
                print("API Ready")
                return
        except httpx.RequestError:
            time.sleep(1)

    pytest.fail("API unreachable. The stack is likely down.")


@pytest.fixture(scope="session")
def api_client(wait_for_api) -> Generator[httpx.Client, None, None]:
    """
    Pre-configured HTTP client for live tests, rooted at /api/v1.

    Yields:
        httpx.Client: Session-scoped client, automatically closed after tests.
    """
    with httpx.Client(base_url=f"{BASE_URL}/api/v1", timeout=30.0) as client:
        yield client
