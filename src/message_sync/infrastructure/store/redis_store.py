"""Redis implementation of application.ports.store.MessageStore."""
from __future__ import annotations

import logging
from collections.abc import Sequence

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from message_sync.application.exceptions import StorageUnavailable
from message_sync.domain.entities.message import Message
from message_sync.infrastructure.store.serializer import deserialize_messages, serialize_messages

logger = logging.getLogger(__name__)


class RedisMessageStore:
    """One JSON array per conversation under ``{prefix}{conversation_id}``."""

    def __init__(self, redis: aioredis.Redis, *, key_prefix: str = "messages_") -> None:
        self._redis = redis
        self._key_prefix = key_prefix

    def key_for(self, conversation_id: str) -> str:
        return f"{self._key_prefix}{conversation_id}"

    async def get_conversation_messages(self, conversation_id: str) -> list[Message] | None:
        key = self.key_for(conversation_id)
        try:
            raw = await self._redis.get(key)
        except RedisError as exc:
            logger.warning("Redis read failed for %s: %s", key, exc)
            raise StorageUnavailable(f"Could not read {key}") from exc
        if raw is None:
            return None
        try:
            return deserialize_messages(raw, conversation_id)
        except (ValueError, KeyError, TypeError) as exc:
            logger.error("Corrupt message list stored under %s", key)
            raise StorageUnavailable(f"Corrupt data under {key}") from exc

    async def put_conversation_messages(
        self,
        conversation_id: str,
        messages: Sequence[Message],
    ) -> None:
        key = self.key_for(conversation_id)
        try:
            await self._redis.set(key, serialize_messages(messages))
        except RedisError as exc:
            logger.warning("Redis write failed for %s: %s", key, exc)
            raise StorageUnavailable(f"Could not write {key}") from exc
