"""Redis service for the analytics cache and per-order processing locks."""

import json
import uuid
from typing import Any

from redis.asyncio import Redis


class RedisService:
    """Owns every Redis key pattern the backend uses."""

    # Lua script for safe lock release (only delete own lock)
    RELEASE_LOCK_SCRIPT = """
    if redis.call("GET", KEYS[1]) == ARGV[1] then
        return redis.call("DEL", KEYS[1])
    else
        return 0
    end
    """

    def __init__(self, redis: Redis, analytics_ttl: int = 300):
        """Initialize Redis service with a Redis client.

        Args:
            redis: Async Redis client instance
            analytics_ttl: Expiry in seconds for cached analytics responses
        """
        self.redis = redis
        self.analytics_ttl = analytics_ttl
        self._release_lock_script = None

    async def _get_release_lock_script(self):
        """Get or register the release lock Lua script."""
        if self._release_lock_script is None:
            self._release_lock_script = self.redis.register_script(self.RELEASE_LOCK_SCRIPT)
        return self._release_lock_script

    # ==================== Order Lock Operations ====================

    async def acquire_order_lock(
        self, order_id: str, owner_id: str | None = None, ttl: int = 30
    ) -> tuple[bool, str]:
        """Acquire a short-lived processing lock for an order.

        Key pattern: lock:order:{order_id}
        Uses SET NX EX for atomic lock acquisition.

        Args:
            order_id: Order UUID string
            owner_id: Unique identifier for lock owner (auto-generated if None)
            ttl: Lock timeout in seconds

        Returns:
            Tuple of (success, owner_id)
        """
        key = f"lock:order:{order_id}"
        if owner_id is None:
            owner_id = str(uuid.uuid4())

        acquired = await self.redis.set(key, owner_id, nx=True, ex=ttl)
        return (acquired is not None, owner_id)

    async def release_order_lock(self, order_id: str, owner_id: str) -> bool:
        """Release an order lock (only if owner matches).

        Args:
            order_id: Order UUID string
            owner_id: The owner_id returned from acquire_order_lock

        Returns:
            True if lock was released, False if not owner or not locked
        """
        key = f"lock:order:{order_id}"
        script = await self._get_release_lock_script()
        result = await script(keys=[key], args=[owner_id])
        return int(result) == 1

    # ==================== Analytics Cache Operations ====================

    @staticmethod
    def analytics_key(seller_id: str, period: str, params: dict[str, Any] | None = None) -> str:
        """Build the cache key for a seller analytics query.

        Key pattern: analytics:{seller_id}:{period}:{sorted params}
        """
        suffix = ""
        if params:
            suffix = ":" + "&".join(f"{k}={params[k]}" for k in sorted(params))
        return f"analytics:{seller_id}:{period}{suffix}"

    async def get_cached_analytics(self, key: str) -> dict[str, Any] | None:
        raw = await self.redis.get(key)
        return json.loads(raw) if raw else None

    async def cache_analytics(self, seller_id: str, key: str, data: dict[str, Any]) -> None:
        """Store an analytics response and remember its key for invalidation.

        Key pattern: analytics_keys:{seller_id} (set of cached keys)
        """
        index_key = f"analytics_keys:{seller_id}"
        pipe = self.redis.pipeline()
        pipe.set(key, json.dumps(data, default=str), ex=self.analytics_ttl)
        pipe.sadd(index_key, key)
        pipe.expire(index_key, self.analytics_ttl)
        await pipe.execute()

    async def invalidate_analytics(self, seller_id: str) -> int:
        """Drop every cached analytics response for a seller.

        Returns:
            Number of cached responses deleted
        """
        index_key = f"analytics_keys:{seller_id}"
        keys = await self.redis.smembers(index_key)
        if not keys:
            return 0
        deleted = await self.redis.delete(*keys, index_key)
        return max(int(deleted) - 1, 0)
