"""
In-process event bus.

Domain code publishes named events after its own transaction has committed.
Events are passed through an asyncio.Queue to a single dispatch task, which
starts one task per subscribed handler in registration order. Handlers run
independently: a failing handler is logged and reported to Sentry, and the
others still run. Delivery is at-most-once and process-local; events still
queued when the process dies are lost.
"""

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable

import sentry_sdk

from ..timezone import utcnow
from .names import EventName

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Event:
    name: EventName
    payload: dict[str, Any] = field(default_factory=dict)
    published_at: datetime = field(default_factory=utcnow)


Handler = Callable[[Event], Awaitable[None]]


def _handler_name(handler: Handler) -> str:
    return getattr(handler, "__qualname__", None) or repr(handler)


async def _invoke(handler: Handler, event: Event) -> None:
    await handler(event)


class EventBus:
    """Queue-backed publish/subscribe for domain events."""

    def __init__(self):
        self._handlers: dict[EventName, list[Handler]] = defaultdict(list)
        self._queue: asyncio.Queue | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._dispatch_task: asyncio.Task | None = None
        self._running_tasks: set[asyncio.Task] = set()

    @property
    def is_running(self) -> bool:
        return self._dispatch_task is not None and not self._dispatch_task.done()

    @property
    def pending_count(self) -> int:
        """Events queued plus handler tasks still in flight."""
        queued = self._queue.qsize() if self._queue is not None else 0
        return queued + len(self._running_tasks)

    def subscribe(self, name: EventName | str, handler: Handler) -> None:
        """Register a handler. Handlers for one event run in registration order."""
        self._handlers[EventName(name)].append(handler)

    def unsubscribe(self, name: EventName | str, handler: Handler) -> None:
        handlers = self._handlers.get(EventName(name), [])
        if handler in handlers:
            handlers.remove(handler)

    def handlers_for(self, name: EventName | str) -> list[Handler]:
        return list(self._handlers.get(EventName(name), []))

    async def start(self) -> None:
        """Start the dispatch task on the running loop."""
        if self.is_running:
            return
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._dispatch_task = asyncio.create_task(
            self._dispatch_loop(), name="event-bus-dispatch"
        )
        logger.info("Event bus started")

    def publish(
        self,
        name: EventName | str,
        payload: dict[str, Any] | None = None,
        **fields: Any,
    ) -> Event | None:
        """
        Queue an event for dispatch and return immediately.

        Never waits for handlers and never raises their errors. An unknown
        event name raises ValueError. Safe to call from another thread.

        Returns:
            The queued Event, or None if the bus is not running
        """
        event = Event(name=EventName(name), payload={**(payload or {}), **fields})

        if not self.is_running:
            logger.warning(f"Event bus not running, dropping {event.name.value}")
            return None

        try:
            current_loop = asyncio.get_running_loop()
        except RuntimeError:
            current_loop = None

        if current_loop is self._loop:
            self._queue.put_nowait(event)
        else:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, event)
        return event

    async def _dispatch_loop(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                self._dispatch(event)
            except Exception as e:
                logger.error(f"Failed to dispatch {event.name.value}: {e}")
                sentry_sdk.capture_exception(e)
            finally:
                self._queue.task_done()

    def _dispatch(self, event: Event) -> None:
        handlers = self.handlers_for(event.name)
        if not handlers:
            logger.debug(f"No handlers for {event.name.value}")
            return

        for handler in handlers:
            task = asyncio.create_task(
                _invoke(handler, event),
                name=f"{event.name.value}:{_handler_name(handler)}",
            )
            self._running_tasks.add(task)
            task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        """Callback to clean up completed handler tasks and log errors."""
        self._running_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc:
            logger.error(f"Event handler {task.get_name()} failed: {exc}")
            sentry_sdk.capture_exception(exc)

    async def drain(self) -> None:
        """Wait until the queue is empty and every handler task has finished."""
        if self._queue is None:
            return
        while True:
            await self._queue.join()
            if not self._running_tasks:
                if self._queue.empty():
                    return
                continue
            await asyncio.gather(*list(self._running_tasks), return_exceptions=True)

    async def stop(self) -> None:
        """Drain outstanding work, then stop the dispatch task."""
        if not self.is_running:
            return
        await self.drain()
        self._dispatch_task.cancel()
        try:
            await self._dispatch_task
        except asyncio.CancelledError:
            pass
        self._dispatch_task = None
        logger.info("Event bus stopped")
