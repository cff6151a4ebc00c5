"""Note events, post-commit outbox and the worker dispatcher."""

from notekeeper.events.dispatcher import EventDispatcher, get_dispatcher, set_dispatcher
from notekeeper.events.outbox import publish_on_commit
from notekeeper.events.schemas import NoteContentUpdated, NoteCreated, NoteEvent

__all__ = [
    "EventDispatcher",
    "NoteContentUpdated",
    "NoteCreated",
    "NoteEvent",
    "get_dispatcher",
    "publish_on_commit",
    "set_dispatcher",
]
