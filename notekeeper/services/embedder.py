"""
Embedding Service

Turns one text into a 1536-dim vector for pgvector search.

Two providers share the same contract:
    - OpenAIEmbedder: ``embeddings.create(input=[text])`` via the OpenAI SDK.
    - OllamaEmbedder: ``POST /api/embed`` on a local Ollama server via httpx.

Contract (both providers):
    - Blank or None input returns None without calling the model.
    - Any failure (network, timeout, non-2xx, empty result, wrong length) is
      logged and returns None. The caller decides how to degrade.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx
from openai import AsyncOpenAI

from notekeeper.core.config import settings
from notekeeper.models.orm import EMBEDDING_DIMENSION

logger = logging.getLogger(__name__)


class Embedder(Protocol):
    """Anything that can embed a single text."""

    async def embed(self, text: str | None) -> list[float] | None: ...


class BaseEmbedder:
    """
    Shared input checks and failure handling.

    Subclasses implement ``_request`` and may raise freely; ``embed`` turns
    every failure into None.
    """

    provider: str = "base"

    def __init__(self, model: str, dimension: int = EMBEDDING_DIMENSION) -> None:
        self._model = model
        self._dimension = dimension

    @property
    def model(self) -> str:
        return self._model

    async def embed(self, text: str | None) -> list[float] | None:
        """
        Embed ``text`` or return None.

        Args:
            text: Input text. None or whitespace-only short-circuits.

        Returns:
            A vector of exactly ``dimension`` floats, or None on any failure.
        """
        if text is None or not text.strip():
            return None

        try:
            vector = await self._request(text)
        except Exception as e:
            logger.error(
                "Embedding request failed (provider=%s, model=%s): %s",
                self.provider,
                self._model,
                e,
            )
            return None

        if not vector:
            logger.warning("Embedding model %s returned no vector", self._model)
            return None

        if len(vector) != self._dimension:
            logger.error(
                "Embedding model %s returned %d dimensions, expected %d",
                self._model,
                len(vector),
                self._dimension,
            )
            return None

        return [float(x) for x in vector]

    async def _request(self, text: str) -> list[float] | None:
        raise NotImplementedError


class OpenAIEmbedder(BaseEmbedder):
    """Embeddings from the OpenAI API (text-embedding-3-small by default)."""

    provider = "openai"

    def __init__(
        self,
        model: str | None = None,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        super().__init__(model or settings.EMBEDDING_MODEL)
        self._api_key = api_key if api_key is not None else settings.OPENAI_API_KEY
        self._base_url = base_url or settings.OPENAI_BASE_URL
        self._timeout = timeout or settings.MODEL_TIMEOUT_SECONDS
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        # Deferred: the SDK refuses to build a client without an API key
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self._api_key,
                base_url=self._base_url,
                timeout=self._timeout,
            )
        return self._client

    async def _request(self, text: str) -> list[float] | None:
        text = text.replace("\n", " ")  # OpenAI recommends single-line input
        response = await self._get_client().embeddings.create(
            input=[text],
            model=self._model,
        )
        if not response.data:
            return None
        return list(response.data[0].embedding)


class OllamaEmbedder(BaseEmbedder):
    """Embeddings from a local Ollama server."""

    provider = "ollama"

    def __init__(
        self,
        model: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(model or settings.EMBEDDING_MODEL)
        self._base_url = (base_url or settings.OLLAMA_BASE_URL).rstrip("/")
        self._timeout = timeout or settings.MODEL_TIMEOUT_SECONDS
        self._transport = transport

    async def _request(self, text: str) -> list[float] | None:
        payload: dict[str, Any] = {"model": self._model, "input": [text]}

        async with httpx.AsyncClient(
            timeout=self._timeout,
            transport=self._transport,
        ) as client:
            response = await client.post(f"{self._base_url}/api/embed", json=payload)
            response.raise_for_status()
            data = response.json()

        embeddings = data.get("embeddings") or []
        return embeddings[0] if embeddings else None


def build_embedder() -> BaseEmbedder:
    """Create the embedder selected by ``EMBEDDING_PROVIDER``."""
    provider = settings.EMBEDDING_PROVIDER.lower()
    if provider == "ollama":
        return OllamaEmbedder()
    if provider != "openai":
        logger.warning("Unknown EMBEDDING_PROVIDER '%s', using openai", provider)
    return OpenAIEmbedder()
