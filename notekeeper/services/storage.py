"""
Upload Storage (read side)

Resolves note file paths under the upload root and reads their bytes.
Writes and deletes belong to the upload service; this module only reads.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Final

from notekeeper.core.config import settings

logger = logging.getLogger(__name__)

IMAGE_MIME_TYPES: Final[dict[str, str]] = {
    ".png": "image/png",
    ".jpeg": "image/jpeg",
    ".jpg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".bmp": "image/bmp",
}
DOCUMENT_MIME_TYPES: Final[dict[str, str]] = {".pdf": "application/pdf"}
DEFAULT_MIME_TYPE: Final[str] = "image/jpeg"


def guess_mime_type(file_name: str) -> str:
    """MIME type from the file extension, ``image/jpeg`` when unknown."""
    suffix = Path(file_name).suffix.lower()
    return IMAGE_MIME_TYPES.get(suffix) or DOCUMENT_MIME_TYPES.get(
        suffix, DEFAULT_MIME_TYPE
    )


class UploadStorage:
    """
    Read-only view of the upload directory.

    Usage::

        storage = UploadStorage("/srv/uploads")
        path = storage.resolve("u1/abc.png")
        data = await storage.read_bytes(path)
    """

    def __init__(self, root: str | Path | None = None) -> None:
        self._root = Path(root or settings.UPLOAD_DIR).resolve()

    @property
    def root(self) -> Path:
        return self._root

    def resolve(self, file_url: str) -> Path:
        """
        Map a stored relative path to an absolute path under the root.

        Raises:
            ValueError: If the path escapes the upload root.
        """
        candidate = (self._root / file_url.lstrip("/\\")).resolve()
        if not candidate.is_relative_to(self._root):
            raise ValueError(f"File path escapes upload root: {file_url}")
        return candidate

    def size_of(self, path: Path) -> int | None:
        """File size in bytes, or None if ``path`` is not a regular file."""
        if not path.is_file():
            return None
        return path.stat().st_size

    async def read_bytes(self, path: Path) -> bytes:
        """Read file content in a worker thread to keep the event loop free."""
        return await asyncio.to_thread(path.read_bytes)
