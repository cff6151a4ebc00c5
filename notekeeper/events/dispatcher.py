"""
Event Dispatcher

In-process worker pool for note events.

Each event goes to one of N asyncio queues chosen from its note id, and each
queue has exactly one worker task. Events for the same note therefore run one
after another in publish order, while different notes run concurrently.

A failing handler is logged and the worker moves on to the next event.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable

from notekeeper.core.config import settings
from notekeeper.events.schemas import NoteEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[NoteEvent], Awaitable[None]]

# Module-level singleton, set by the application lifespan
_dispatcher: EventDispatcher | None = None


class EventDispatcher:
    """
    Per-note ordered dispatch over a fixed pool of worker tasks.

    Usage::

        dispatcher = EventDispatcher(processor.handle, workers=4)
        dispatcher.start()
        dispatcher.publish(NoteCreated(note_id))
        await dispatcher.stop()  # waits for queued events
    """

    def __init__(self, handler: EventHandler, workers: int | None = None) -> None:
        self._handler = handler
        self._size = max(1, workers or settings.PROCESSOR_WORKERS)
        self._queues: list[asyncio.Queue[NoteEvent]] = []
        self._tasks: list[asyncio.Task[None]] = []
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    @property
    def size(self) -> int:
        return self._size

    def route(self, note_id: uuid.UUID) -> int:
        """Stable worker index for a note."""
        return note_id.int % self._size

    def start(self) -> None:
        """Create the queues and worker tasks on the running loop."""
        if self.running:
            return
        self._loop = asyncio.get_running_loop()
        self._queues = [asyncio.Queue() for _ in range(self._size)]
        self._tasks = [
            asyncio.create_task(self._work(i, q), name=f"note-worker-{i}")
            for i, q in enumerate(self._queues)
        ]
        logger.info("Event dispatcher started with %d workers", self._size)

    def publish(self, event: NoteEvent) -> None:
        """
        Enqueue an event without waiting for it.

        Safe to call from any thread; off the loop thread the put is handed
        to the loop with ``call_soon_threadsafe``.

        Raises:
            RuntimeError: If the dispatcher has not been started.
        """
        if not self.running:
            raise RuntimeError("Event dispatcher is not running")
        queue = self._queues[self.route(event.note_id)]
        if self._on_loop_thread():
            queue.put_nowait(event)
        else:
            self._loop.call_soon_threadsafe(queue.put_nowait, event)
        logger.debug("Queued %s for note %s", type(event).__name__, event.note_id)

    async def join(self) -> None:
        """Wait until every queued event has been handled."""
        await asyncio.gather(*(q.join() for q in self._queues))

    async def stop(self) -> None:
        """Drain the queues, then cancel the workers."""
        if not self.running:
            return
        # Let puts handed over by other threads land before draining
        await asyncio.sleep(0)
        await self.join()
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        self._queues = []
        self._loop = None
        logger.info("Event dispatcher stopped")

    def _on_loop_thread(self) -> bool:
        try:
            return asyncio.get_running_loop() is self._loop
        except RuntimeError:
            return False

    async def _work(self, index: int, queue: asyncio.Queue[NoteEvent]) -> None:
        while True:
            event = await queue.get()
            try:
                await self._handler(event)
            except Exception:
                logger.exception(
                    "Worker %d: %s for note %s failed",
                    index,
                    type(event).__name__,
                    event.note_id,
                )
            finally:
                queue.task_done()


def get_dispatcher() -> EventDispatcher | None:
    """The application's dispatcher, if one is installed."""
    return _dispatcher


def set_dispatcher(dispatcher: EventDispatcher | None) -> None:
    """Install (or clear) the application's dispatcher."""
    global _dispatcher  # noqa: PLW0603
    _dispatcher = dispatcher
