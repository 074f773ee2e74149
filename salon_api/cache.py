"""
Redis caching utilities for read-heavy endpoints.
Every operation is best-effort: when Redis is unreachable reads behave as a
miss and writes are no-ops, nothing is raised to the caller.
"""

import json
import logging
from typing import Any, Mapping, Optional
from urllib.parse import quote

from .redis_connection import RedisConnectionManager, is_connection_error

logger = logging.getLogger(__name__)

DEFAULT_TTL = 300
# Characters encodeURIComponent leaves untouched besides alphanumerics and -_.
URI_COMPONENT_SAFE = "!~*'()"


class Cache:
    """Redis cache wrapper with automatic JSON serialization"""

    def __init__(self, connection: RedisConnectionManager, default_ttl: int = DEFAULT_TTL):
        self.connection = connection
        self.default_ttl = default_ttl

    async def _handle_error(self, action: str, key: str, exc: Exception) -> None:
        logger.error(f"❌ Cache {action} error for {key}: {exc}")
        if is_connection_error(exc):
            await self.connection.reset()

    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache, None on miss or when Redis is down"""
        client = await self.connection.get_client()
        if not client:
            return None

        try:
            value = await client.get(key)
            if value is not None:
                logger.debug(f"✅ Cache HIT: {key}")
                return json.loads(value)
            logger.debug(f"❌ Cache MISS: {key}")
            return None
        except Exception as e:
            await self._handle_error("get", key, e)
            return None

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Set value in cache with TTL (SETEX)"""
        client = await self.connection.get_client()
        if not client:
            return False

        ttl = ttl or self.default_ttl
        try:
            serialized = json.dumps(value)
            await client.setex(key, ttl, serialized)
            logger.debug(f"✅ Cache SET: {key} (TTL: {ttl}s)")
            return True
        except Exception as e:
            await self._handle_error("set", key, e)
            return False

    async def delete(self, key: str) -> bool:
        """Delete value from cache"""
        client = await self.connection.get_client()
        if not client:
            return False

        try:
            await client.delete(key)
            logger.debug(f"✅ Cache DELETE: {key}")
            return True
        except Exception as e:
            await self._handle_error("delete", key, e)
            return False

    async def invalidate_pattern(self, pattern: str) -> bool:
        """Delete all keys matching a glob pattern (e.g. 'bookings:*')"""
        client = await self.connection.get_client()
        if not client:
            return False

        try:
            keys = await client.keys(pattern)
            if keys:
                deleted = await client.delete(*keys)
                logger.debug(f"✅ Cache DELETE pattern: {pattern} ({deleted} keys)")
            return True
        except Exception as e:
            await self._handle_error("invalidate", pattern, e)
            return False


def build_cache_key(prefix: str, params: Mapping[str, Any]) -> str:
    """
    Build a deterministic cache key: ``<prefix>:?k1=v1&k2=v2`` with keys sorted
    and empty/None values dropped. Returns ``<prefix>:`` when nothing remains.
    """
    entries = [(k, v) for k, v in params.items() if v is not None and v != ""]
    if not entries:
        return f"{prefix}:"
    query = "&".join(
        f"{k}={quote(str(v), safe=URI_COMPONENT_SAFE)}" for k, v in sorted(entries, key=lambda kv: kv[0])
    )
    return f"{prefix}:?{query}"
