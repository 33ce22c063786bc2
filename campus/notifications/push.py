"""
Push sinks: the live channel a notification is handed to after it is stored.

The core only needs ``await sink.send(notification)``. PushHub keeps one
bounded queue per connected client, keyed by recipient id, which a
transport layer (SSE, websocket) drains.
"""

import asyncio
import logging
from collections import defaultdict
from typing import Protocol

from ..models import Notification

logger = logging.getLogger(__name__)


class PushSink(Protocol):
    async def send(self, notification: Notification) -> None: ...


class LoggingPushSink:
    """Sink that only logs. Used when no live transport is attached."""

    async def send(self, notification: Notification) -> None:
        logger.debug(
            f"Push {notification.id} to {notification.recipient.kind.value} "
            f"{notification.recipient.id}: {notification.title}"
        )


class PushHub:
    """Per-recipient fan-in of live notification payloads."""

    def __init__(self, max_queue_size: int = 100):
        self._subscribers: dict[str, set[asyncio.Queue]] = defaultdict(set)
        self._max_queue_size = max_queue_size

    def subscriber_count(self, recipient_id: str | None = None) -> int:
        if recipient_id is not None:
            return len(self._subscribers.get(recipient_id, ()))
        return sum(len(queues) for queues in self._subscribers.values())

    def subscribe(self, recipient_id: str) -> asyncio.Queue:
        """Open a channel for one connected client of the recipient."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._max_queue_size)
        self._subscribers[recipient_id].add(queue)
        logger.info(
            f"Push client connected for {recipient_id} "
            f"({self.subscriber_count(recipient_id)} total)"
        )
        return queue

    def unsubscribe(self, recipient_id: str, queue: asyncio.Queue) -> None:
        queues = self._subscribers.get(recipient_id)
        if not queues:
            return
        queues.discard(queue)
        if not queues:
            del self._subscribers[recipient_id]
        logger.info(f"Push client disconnected for {recipient_id}")

    async def send(self, notification: Notification) -> None:
        """Push the notification payload to every client of its recipient."""
        recipient_id = notification.recipient.id
        queues = self._subscribers.get(recipient_id)
        if not queues:
            return

        payload = notification.to_payload()
        dead_queues = []
        for queue in queues:
            try:
                queue.put_nowait(payload)
            except asyncio.QueueFull:
                dead_queues.append(queue)
        for q in dead_queues:
            logger.warning(f"Dropping slow push client for {recipient_id}")
            self.unsubscribe(recipient_id, q)
