"""In-process fan-out notifier built on per-subscriber asyncio queues."""

from __future__ import annotations

import asyncio
from collections import defaultdict

from ..logging import get_logger
from .models import BookPayload

logger = get_logger(__name__)

# Marks the end of a stream whose subscriber was dropped or the notifier closed
_CLOSED = object()


class Subscription:
    """Async iterator over one listener's queue.

    Registration happens when the subscription is created, not on first
    iteration, so a publish issued right after ``subscribe()`` is delivered.
    """

    def __init__(self, notifier: InProcessNotifier, topic: str, queue: asyncio.Queue):
        self._notifier = notifier
        self._topic = topic
        self._queue = queue
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> BookPayload:
        if self._closed:
            raise StopAsyncIteration
        try:
            item = await self._queue.get()
        except asyncio.CancelledError:
            self.close()
            raise
        if item is _CLOSED:
            self.close()
            raise StopAsyncIteration
        return item

    async def aclose(self) -> None:
        self.close()

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._notifier._discard(self._topic, self._queue)


class InProcessNotifier:
    """Broadcast channel for a single process.

    Every subscriber owns a bounded queue. ``publish`` uses ``put_nowait``;
    a subscriber whose queue is full is dropped and its stream ends. All
    registry changes run on the event loop without awaiting, so concurrent
    publishers and subscribers never observe a half-updated registry.
    """

    def __init__(self, queue_size: int = 100):
        self.queue_size = queue_size
        self._listeners: dict[str, set[asyncio.Queue]] = defaultdict(set)

    def subscriber_count(self, topic: str) -> int:
        return len(self._listeners.get(topic, ()))

    async def publish(self, topic: str, payload: BookPayload) -> int:
        delivered = 0
        for queue in list(self._listeners.get(topic, ())):
            try:
                queue.put_nowait(payload)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning(
                    "Dropping slow subscriber",
                    topic=topic,
                    queue_size=self.queue_size,
                )
                self._discard(topic, queue)
                self._terminate(queue)

        logger.debug("Change event published", topic=topic, delivered=delivered)
        return delivered

    def subscribe(self, topic: str) -> Subscription:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        self._listeners[topic].add(queue)
        logger.debug("Subscriber registered", topic=topic, subscribers=self.subscriber_count(topic))
        return Subscription(self, topic, queue)

    async def close(self) -> None:
        for topic, queues in list(self._listeners.items()):
            for queue in list(queues):
                self._terminate(queue)
            queues.clear()
            self._listeners.pop(topic, None)

    def _discard(self, topic: str, queue: asyncio.Queue) -> None:
        queues = self._listeners.get(topic)
        if queues is None:
            return
        queues.discard(queue)
        if not queues:
            del self._listeners[topic]

    @staticmethod
    def _terminate(queue: asyncio.Queue) -> None:
        # Undelivered items are discarded so the end marker always fits
        while not queue.empty():
            queue.get_nowait()
        queue.put_nowait(_CLOSED)
