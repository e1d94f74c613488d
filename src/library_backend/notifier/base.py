"""Change notifier interface."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Protocol

from .models import BookPayload


class ChangeStream(Protocol):
    """Stream of payloads for one subscriber."""

    def __aiter__(self) -> AsyncIterator[BookPayload]: ...

    async def __anext__(self) -> BookPayload: ...

    async def aclose(self) -> None: ...


class ChangeNotifier(Protocol):
    """Topic-keyed broadcast of change events to live subscribers.

    Delivery is at-most-once per subscriber: nothing is buffered for
    listeners that are not subscribed at publish time, and nothing is
    replayed to late subscribers.
    """

    async def publish(self, topic: str, payload: BookPayload) -> int:
        """
        Broadcast ``payload`` to the current subscribers of ``topic``.

        Must not wait on slow subscribers.

        Returns:
            Number of subscribers the payload was handed to
        """
        ...

    def subscribe(self, topic: str) -> ChangeStream:
        """
        Open an independent stream of payloads published on ``topic``.

        Closing or cancelling the iterator removes the registration.
        """
        ...

    async def close(self) -> None:
        """Release resources held by the notifier."""
        ...
