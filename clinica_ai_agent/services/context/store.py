"""
Redis-backed conversation context store.
"""

from typing import Optional

import redis.asyncio as redis
from pydantic import ValidationError
from redis.exceptions import RedisError

from ...core.exceptions import ContextStoreError
from ...core.models import ConversationContext
from ...utils.logging import get_logger


logger = get_logger("clinica.context")

KEY_PREFIX = "conversation_context"


def create_redis_client(redis_url: str) -> redis.Redis:
    """Build a pooled async Redis client."""
    pool = redis.ConnectionPool.from_url(redis_url, max_connections=20, decode_responses=True)
    return redis.Redis(connection_pool=pool)


class ContextStore:
    """Persists whole contexts as JSON under ``conversation_context:{user}:{session}``."""

    def __init__(self, client: redis.Redis, ttl_seconds: int = 1800):
        self.redis = client
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def key(user_id: str, session_id: str) -> str:
        return f"{KEY_PREFIX}:{user_id}:{session_id}"

    async def load(self, user_id: str, session_id: str) -> Optional[ConversationContext]:
        """Fetch a context and extend its TTL; None when absent, expired or unreadable."""
        key = self.key(user_id, session_id)
        try:
            payload = await self.redis.get(key)
            if payload is None:
                return None
            await self.redis.expire(key, self.ttl_seconds)
        except RedisError as e:
            raise ContextStoreError(f"failed to read {key}: {e}") from e

        try:
            return ConversationContext.model_validate_json(payload)
        except ValidationError as e:
            logger.warning(f"context: discarding unreadable payload for {key}: {e}")
            return None

    async def save(self, context: ConversationContext) -> None:
        key = self.key(context.user_id, context.session_id)
        try:
            await self.redis.setex(key, self.ttl_seconds, context.model_dump_json())
        except RedisError as e:
            raise ContextStoreError(f"failed to write {key}: {e}") from e

    async def delete(self, user_id: str, session_id: str) -> None:
        key = self.key(user_id, session_id)
        try:
            await self.redis.delete(key)
        except RedisError as e:
            raise ContextStoreError(f"failed to delete {key}: {e}") from e
