"""
Redis-based cache for embedding vectors.
"""
import hashlib
import json
import logging
import os
from typing import List, Optional

import redis.asyncio as redis_async

from bzr_portal.core.config import settings

logger = logging.getLogger(__name__)


class CacheService:
    """Caches provider embeddings by text hash. Errors never reach the caller."""

    def __init__(self, host: str = None, port: int = None, db: int = None, ttl_seconds: int = None):
        self.redis_client: Optional[redis_async.Redis] = None
        self.ttl_seconds = ttl_seconds or settings.EMBEDDING_CACHE_TTL_SECONDS

        # Detect Docker environment
        is_docker = os.path.exists('/.dockerenv') or os.environ.get('DOCKER_CONTAINER') == 'true'
        self.host = host or ('redis' if is_docker else settings.REDIS_HOST)
        self.port = port or settings.REDIS_PORT
        self.db = db or (settings.REDIS_DB + 3)  # DB 3 for cache (0=Celery, 1=results, 4=rate limits)

    async def _get_client(self):
        """Get or create Redis client."""
        if self.redis_client is None:
            self.redis_client = redis_async.Redis(
                host=self.host,
                port=self.port,
                db=self.db,
                password=None,
                decode_responses=False,
                socket_connect_timeout=2,
                socket_timeout=2
            )
        return self.redis_client

    def _hash_text(self, text: str, model: str) -> str:
        return hashlib.sha256(f"{model}:{text}".encode()).hexdigest()

    async def get_embedding(self, text: str, model: str = "") -> Optional[List[float]]:
        """Get cached embedding for text."""
        try:
            client = await self._get_client()
            cached = await client.get(f"embedding:{self._hash_text(text, model)}")
            if cached:
                if isinstance(cached, bytes):
                    cached = cached.decode()
                return json.loads(cached)
        except Exception as e:
            logger.warning(f"Cache miss/error for embedding: {e}")
        return None

    async def set_embedding(self, text: str, embedding: List[float], model: str = "", ttl_seconds: int = None):
        """Cache embedding for text."""
        try:
            client = await self._get_client()
            key = f"embedding:{self._hash_text(text, model)}"
            await client.setex(key, ttl_seconds or self.ttl_seconds, json.dumps(embedding))
        except Exception as e:
            logger.warning(f"Failed to cache embedding: {e}")

    async def close(self):
        """Close Redis connection."""
        if self.redis_client:
            await self.redis_client.close()
            self.redis_client = None


# Global cache service instance
cache_service = CacheService()
