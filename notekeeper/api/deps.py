"""
API Dependencies

Caller identity and service providers for the v1 routers.
"""

from __future__ import annotations

import uuid

from fastapi import Header

from notekeeper.core.exceptions import AuthenticationError
from notekeeper.services.embedder import BaseEmbedder, build_embedder
from notekeeper.services.retriever import Retriever


async def get_current_user_id(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
) -> uuid.UUID:
    """
    Authenticated caller id, set by the gateway in ``X-User-Id``.

    Raises:
        AuthenticationError: If the header is missing or not a UUID.
    """
    if not x_user_id:
        raise AuthenticationError("Authentication required")
    try:
        return uuid.UUID(x_user_id.strip())
    except ValueError:
        raise AuthenticationError("Invalid user id") from None


def get_retriever() -> Retriever:
    """FastAPI dependency returning a Retriever instance."""
    return Retriever()


def get_embedder() -> BaseEmbedder:
    """FastAPI dependency returning the configured embedder."""
    return build_embedder()
