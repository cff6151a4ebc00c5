"""
Note Events

Emitted after a note row is committed; consumed by the note processor.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class NoteCreated:
    """A note row was inserted (any note type)."""

    note_id: UUID


@dataclass(frozen=True)
class NoteContentUpdated:
    """The content of a TEXT note was edited."""

    note_id: UUID
    new_content: str


NoteEvent = NoteCreated | NoteContentUpdated
