"""Repositories package."""

from notekeeper.repositories.notes import NoteRepository, note_repository

__all__ = [
    "NoteRepository",
    "note_repository",
]
