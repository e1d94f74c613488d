"""Notifier backed by Redis pub/sub, for deployments running several API processes."""

from __future__ import annotations

from collections.abc import AsyncGenerator

import redis.asyncio as redis
from pydantic import ValidationError

from ..logging import get_logger
from .models import BookPayload, ChangeEvent

logger = get_logger(__name__)


def create_redis_client(redis_url: str) -> redis.Redis:
    """Create a Redis client on its own connection pool."""
    pool = redis.ConnectionPool.from_url(
        redis_url,
        decode_responses=True,
        max_connections=50,
        socket_connect_timeout=5,
        retry_on_timeout=True,
        health_check_interval=30,
    )
    logger.info("Redis connection pool initialized", max_connections=50)
    return redis.Redis(connection_pool=pool)


class RedisNotifier:
    """Publishes change events as JSON on ``<prefix>:<topic>`` channels.

    Redis pub/sub has the same delivery contract as the in-process notifier:
    connected subscribers get each message once, nothing is kept for
    subscribers that join later. The subscription is registered with Redis
    when the stream is first iterated.
    """

    def __init__(self, client: redis.Redis, channel_prefix: str = "library"):
        self._redis = client
        self.channel_prefix = channel_prefix

    def channel(self, topic: str) -> str:
        return f"{self.channel_prefix}:{topic}"

    async def publish(self, topic: str, payload: BookPayload) -> int:
        channel = self.channel(topic)
        json_data = ChangeEvent(topic=topic, payload=payload).model_dump_json()
        receivers = await self._redis.publish(channel, json_data)
        logger.debug(
            "Change event published to Redis",
            channel=channel,
            receivers=receivers,
            data_length=len(json_data),
        )
        return receivers

    def subscribe(self, topic: str) -> AsyncGenerator[BookPayload, None]:
        return self._listen(topic)

    async def _listen(self, topic: str) -> AsyncGenerator[BookPayload, None]:
        channel = self.channel(topic)
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(channel)
        logger.info("Subscribed to Redis channel", channel=channel)
        try:
            while True:
                msg = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
                if not msg or msg.get("type") != "message":
                    continue
                try:
                    event = ChangeEvent.model_validate_json(msg["data"])
                except ValidationError as e:
                    logger.error("Discarding malformed change event", channel=channel, error=str(e))
                    continue
                yield event.payload
        finally:
            logger.info("Unsubscribing from Redis channel", channel=channel)
            await pubsub.unsubscribe(channel)
            await pubsub.aclose()

    async def close(self) -> None:
        await self._redis.aclose()
        logger.info("Redis client closed")
