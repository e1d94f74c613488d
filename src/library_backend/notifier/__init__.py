"""Change notifications for live subscriptions."""

from __future__ import annotations

from ..config import Settings
from .base import ChangeNotifier, ChangeStream
from .memory import InProcessNotifier
from .models import BOOK_ADDED, AuthorPayload, BookPayload, ChangeEvent


def create_notifier(settings: Settings) -> ChangeNotifier:
    """Create the notifier selected by ``settings.notifier_backend``."""
    backend = settings.notifier_backend.lower()

    if backend == "memory":
        return InProcessNotifier(queue_size=settings.subscriber_queue_size)

    elif backend == "redis":
        from .redis_backend import RedisNotifier, create_redis_client

        return RedisNotifier(create_redis_client(settings.redis_url))

    else:
        raise ValueError(f"Unsupported notifier backend: {settings.notifier_backend}")


__all__ = [
    "BOOK_ADDED",
    "AuthorPayload",
    "BookPayload",
    "ChangeEvent",
    "ChangeNotifier",
    "ChangeStream",
    "InProcessNotifier",
    "create_notifier",
]
