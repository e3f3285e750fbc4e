"""
Per-user fixed-window rate limiting on Redis.
"""

import redis.asyncio as redis

from ...core.exceptions import RateLimitExceededError
from ...utils.logging import get_logger


logger = get_logger("clinica.rate_limit")


class RateLimiter:
    """Counts LLM calls per user in a fixed window."""

    def __init__(self, client: redis.Redis, window_seconds: int = 60, max_requests: int = 100):
        self.client = client
        self.window_seconds = window_seconds
        self.max_requests = max_requests

    @staticmethod
    def key(user_id: str) -> str:
        return f"gemini_rate_limit:{user_id}"

    async def check(self, user_id: str) -> int:
        """
        Count one call for ``user_id``.

        INCR and EXPIRE run in a single MULTI/EXEC so concurrent callers never
        leave a counter without a TTL. Raises RateLimitExceededError when the
        count before this call had already reached the limit.
        """
        key = self.key(user_id)
        async with self.client.pipeline(transaction=True) as pipe:
            pipe.incr(key)
            pipe.expire(key, self.window_seconds)
            count, _ = await pipe.execute()

        if int(count) - 1 >= self.max_requests:
            logger.warning(f"rate_limit: {user_id} exceeded {self.max_requests}/{self.window_seconds}s")
            raise RateLimitExceededError(
                f"Rate limit exceeded for {user_id}. Please try again later."
            )
        return int(count)
