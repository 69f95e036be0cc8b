"""Daily question limit for free-tier users."""
import logging
import os
from typing import Optional, Tuple

import redis.asyncio as redis

from bzr_portal.core.config import settings

logger = logging.getLogger(__name__)


class RateLimiter:
    """Counts questions per user in a rolling 24 hour window."""

    def __init__(self, max_questions: Optional[int] = None):
        """Initialize rate limiter with Redis connection."""
        self.redis_client: Optional[redis.Redis] = None
        self.max_questions = max_questions or settings.FREE_DAILY_QUESTION_LIMIT
        self.window_hours = 24
        self.window_seconds = self.window_hours * 3600

    async def _get_client(self) -> redis.Redis:
        """Get or create Redis client."""
        if self.redis_client is None:
            # Detect Docker environment
            is_docker = os.path.exists('/.dockerenv') or os.environ.get('DOCKER_CONTAINER') == 'true'
            host = 'redis' if is_docker else settings.REDIS_HOST

            self.redis_client = redis.Redis(
                host=host,
                port=settings.REDIS_PORT,
                db=settings.REDIS_DB + 4,  # DB 4 for rate limiting (0=Celery, 1=results, 3=cache)
                password=None,
                decode_responses=True,
                socket_connect_timeout=5
            )
        return self.redis_client

    def _key(self, user_id: str) -> str:
        return f"rate_limit:daily_questions:{user_id}"

    async def check_rate_limit(self, user_id: str, subscription: str = "free") -> Tuple[bool, Optional[str], Optional[int]]:
        """
        Check if a user may ask another question.

        Args:
            user_id: The user asking
            subscription: 'free' or 'pro'; pro users are never limited

        Returns:
            Tuple of (is_allowed, error_message, retry_after_seconds)
        """
        if (subscription or "free").lower() == "pro":
            return True, None, None

        try:
            client = await self._get_client()
            key = self._key(user_id)

            current_count = await client.get(key)

            if current_count is None:
                # First question today, initialize counter with TTL
                await client.setex(key, self.window_seconds, "1")
                return True, None, None

            count = int(current_count)

            if count >= self.max_questions:
                ttl = await client.ttl(key)
                if ttl <= 0:
                    # TTL expired, reset counter
                    await client.setex(key, self.window_seconds, "1")
                    return True, None, None

                hours_remaining = ttl // 3600
                minutes_remaining = (ttl % 3600) // 60
                if hours_remaining > 0:
                    wait = f"{hours_remaining} h"
                elif minutes_remaining > 0:
                    wait = f"{minutes_remaining} min"
                else:
                    wait = f"{ttl} s"
                error_msg = (
                    f"Iskoristili ste dnevni limit od {self.max_questions} pitanja za FREE korisnike. "
                    f"Pokušajte ponovo za {wait} ili pređite na PRO paket."
                )

                logger.warning(f"Daily question limit reached for user {user_id}: {count}/{self.max_questions}, {ttl}s remaining")
                return False, error_msg, ttl

            # Increment counter (TTL is preserved)
            await client.incr(key)
            logger.debug(f"Daily limit check passed for user {user_id}: {count + 1}/{self.max_questions}")
            return True, None, None

        except Exception as e:
            # Fail open: a Redis outage must not block the assistant
            logger.error(f"Rate limiter error for user {user_id}: {e}", exc_info=True)
            return True, None, None

    async def close(self):
        """Close Redis connection."""
        if self.redis_client:
            await self.redis_client.close()
            self.redis_client = None


# Singleton instance
rate_limiter = RateLimiter()
