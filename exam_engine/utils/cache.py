"""
Redis cache utility for test analytics
"""
import redis
import json
import logging
from typing import Optional, Any
from exam_engine.config import settings

logger = logging.getLogger(__name__)


class CacheService:
    """
    Redis-based cache for computed analytics

    Keys embed the test version, and every attempt write bumps the version,
    so stale entries are never read; they simply expire.
    """

    def __init__(self, url: Optional[str] = None, enabled: Optional[bool] = None):
        self.redis_client = None

        enabled = settings.CACHE_ENABLED if enabled is None else enabled
        if not enabled:
            logger.info("Caching disabled by configuration")
            return

        try:
            self.redis_client = redis.from_url(
                url or settings.REDIS_URL,
                decode_responses=True,
                socket_connect_timeout=5
            )
            # Test connection
            self.redis_client.ping()
            logger.info("Redis connection established")
        except redis.RedisError as e:
            logger.warning(f"Redis connection failed: {str(e)}. Caching disabled.")
            self.redis_client = None

    @staticmethod
    def analytics_key(test_id: Any, version: int) -> str:
        """Cache key for one version of a test's analytics"""
        return f"analytics:{test_id}:{version}"

    def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache

        Args:
            key: Cache key

        Returns:
            Cached value or None
        """
        if not self.redis_client:
            return None

        try:
            value = self.redis_client.get(key)
            if value:
                logger.debug(f"Cache hit: {key}")
                return json.loads(value)
            logger.debug(f"Cache miss: {key}")
            return None
        except redis.RedisError as e:
            logger.error(f"Cache get error: {str(e)}")
            return None

    def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[int] = None
    ) -> bool:
        """
        Set value in cache

        Args:
            key: Cache key
            value: Value to cache (must be JSON serializable)
            ttl: Time to live in seconds (default from settings)

        Returns:
            Success status
        """
        if not self.redis_client:
            return False

        try:
            ttl = ttl or settings.ANALYTICS_CACHE_TTL
            self.redis_client.setex(key, ttl, json.dumps(value))
            logger.debug(f"Cache set: {key} (TTL: {ttl}s)")
            return True
        except (redis.RedisError, TypeError) as e:
            logger.error(f"Cache set error: {str(e)}")
            return False


# Global instance
cache_service = CacheService()
