"""
Chat Model Client

Thin async wrapper over the OpenAI chat completions API with inline media.

Images are sent as ``image_url`` parts holding a base64 data URL; PDFs are
sent as ``file`` parts. The client returns the raw message text and raises on
any failure; fallbacks live in the classifier and retriever.
"""

from __future__ import annotations

import base64
import logging
from typing import Any, Protocol

from openai import AsyncOpenAI

from notekeeper.core.config import settings
from notekeeper.schemas.ai import MediaAttachment

logger = logging.getLogger(__name__)


class ChatClient(Protocol):
    """Anything that can answer a system + user prompt pair."""

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        media: MediaAttachment | None = None,
        temperature: float = 0.3,
        max_tokens: int = 2000,
        model: str | None = None,
    ) -> str: ...


def _media_part(media: MediaAttachment) -> dict[str, Any]:
    encoded = base64.b64encode(media.data).decode("ascii")
    data_url = f"data:{media.mime_type};base64,{encoded}"
    if media.is_image:
        return {"type": "image_url", "image_url": {"url": data_url}}
    return {"type": "file", "file": {"filename": media.filename, "file_data": data_url}}


class OpenAIChatClient:
    """
    Chat completions against OpenAI (or any compatible endpoint).

    Usage::

        client = OpenAIChatClient()
        text = await client.complete(system, user, temperature=0.3, max_tokens=500)
    """

    def __init__(
        self,
        model: str | None = None,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self._model = model or settings.CHAT_MODEL
        self._api_key = api_key if api_key is not None else settings.OPENAI_API_KEY
        self._base_url = base_url or settings.OPENAI_BASE_URL
        self._timeout = timeout or settings.MODEL_TIMEOUT_SECONDS
        self._client = client

    @property
    def model(self) -> str:
        return self._model

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self._api_key,
                base_url=self._base_url,
                timeout=self._timeout,
            )
        return self._client

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        media: MediaAttachment | None = None,
        temperature: float = 0.3,
        max_tokens: int = 2000,
        model: str | None = None,
    ) -> str:
        """
        Run one chat completion.

        Args:
            system_prompt: Instructions for the model.
            user_prompt: Templated request text.
            media: Optional image or PDF sent alongside the user prompt.
            temperature: Sampling temperature.
            max_tokens: Output token ceiling.
            model: Override the configured model for this call.

        Returns:
            The message text ("" if the model returned none).

        Raises:
            openai.OpenAIError: On transport, timeout or API errors.
        """
        user_content: str | list[dict[str, Any]] = user_prompt
        if media is not None:
            user_content = [{"type": "text", "text": user_prompt}, _media_part(media)]

        model_name = model or self._model
        response = await self._get_client().chat.completions.create(
            model=model_name,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content},
            ],
            temperature=temperature,
            max_tokens=max_tokens,
        )

        content = response.choices[0].message.content or ""
        logger.debug(
            "Chat completion done (model=%s, media=%s, length=%d)",
            model_name,
            media.mime_type if media else None,
            len(content),
        )
        return content


def build_chat_client(powerful: bool = False) -> OpenAIChatClient:
    """Create the default chat client, or the higher-capability one."""
    if powerful:
        return OpenAIChatClient(model=settings.CHAT_MODEL_POWERFUL)
    return OpenAIChatClient()
