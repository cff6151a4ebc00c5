"""
Reprocess Script Unit Tests

Outcome counting in scripts/reprocess_notes.py with the processor mocked.
"""

from __future__ import annotations

import importlib.util
import uuid
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

SCRIPT_PATH = Path(__file__).resolve().parents[2] / "scripts" / "reprocess_notes.py"


@pytest.fixture
def script():
    spec = importlib.util.spec_from_file_location("reprocess_notes", SCRIPT_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.mark.asyncio
async def test_skipped_notes_are_counted_separately(script):
    processor = MagicMock()
    processor.process_note_created = AsyncMock(
        side_effect=["all", None, RuntimeError("model down"), "classification"]
    )
    note_ids = [uuid.uuid4() for _ in range(4)]

    with (
        patch.object(script, "build_note_processor", return_value=processor),
        patch.object(script, "logger"),
    ):
        succeeded, skipped, failed = await script.reprocess(note_ids)

    assert (succeeded, skipped, failed) == (2, 1, 1)
    assert processor.process_note_created.await_count == 4
