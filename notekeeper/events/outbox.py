"""
Post-commit Outbox

``publish_on_commit`` parks events on the session; they reach the dispatcher
only after the surrounding transaction commits, and are dropped on rollback.
A worker therefore never sees a note row that is not yet visible.

The commit hook runs on whichever thread commits (sync sessions in a
threadpool included); ``EventDispatcher.publish`` is thread-safe.

Usage::

    async with session.begin():
        session.add(note)
        publish_on_commit(session, NoteCreated(note.id))
"""

from __future__ import annotations

import logging

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session, SessionTransaction

from notekeeper.events.dispatcher import get_dispatcher
from notekeeper.events.schemas import NoteEvent

logger = logging.getLogger(__name__)

PENDING_EVENTS_KEY = "notekeeper.pending_events"


def publish_on_commit(session: AsyncSession | Session, note_event: NoteEvent) -> None:
    """Queue ``note_event`` for dispatch once ``session`` commits."""
    session.info.setdefault(PENDING_EVENTS_KEY, []).append(note_event)


def pending_events(session: AsyncSession | Session) -> list[NoteEvent]:
    return list(session.info.get(PENDING_EVENTS_KEY, []))


@event.listens_for(Session, "after_commit")
def _dispatch_pending(session: Session) -> None:
    events: list[NoteEvent] = session.info.pop(PENDING_EVENTS_KEY, [])
    if not events:
        return

    dispatcher = get_dispatcher()
    if dispatcher is None or not dispatcher.running:
        logger.warning("No event dispatcher running, dropped %d events", len(events))
        return

    for note_event in events:
        dispatcher.publish(note_event)


@event.listens_for(Session, "after_soft_rollback")
def _discard_pending(
    session: Session,
    previous_transaction: SessionTransaction,
) -> None:
    # Savepoint rollbacks keep the outer transaction and its events
    if previous_transaction.nested:
        return
    dropped = session.info.pop(PENDING_EVENTS_KEY, None)
    if dropped:
        logger.info("Transaction rolled back, discarded %d note events", len(dropped))
