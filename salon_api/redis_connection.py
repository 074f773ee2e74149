"""
Lazily-established, process-wide Redis connection shared by the cache,
the rate limiter and the duplicate-submission guard.

The handle is single-assignment without a lock: the first caller connects,
later callers reuse it. Two concurrent first callers may both connect; the
loser's client is simply dropped.
"""

import logging
import socket
import time
from typing import Callable, Optional
from urllib.parse import urlparse

import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError

logger = logging.getLogger(__name__)

# Don't hammer an unreachable server on every request
RECONNECT_COOLDOWN_SECONDS = 5.0


def mask_url(url: str) -> str:
    """Mask password in URL for logging"""
    if "@" in url:
        url_parts = url.split("@")
        protocol = url_parts[0].split(":")[0]
        return f"{protocol}:****@{url_parts[1]}"
    return url


def _default_factory(url: str) -> redis.Redis:
    return redis.from_url(
        url,
        decode_responses=True,
        socket_connect_timeout=2,
        socket_timeout=5,
        retry_on_timeout=True,
        health_check_interval=30,
        max_connections=20,
    )


def _is_dns_failure(exc: BaseException) -> bool:
    while exc is not None:
        if isinstance(exc, socket.gaierror):
            return True
        exc = exc.__cause__ or exc.__context__
    return False


class RedisConnectionManager:
    """Owns the shared async Redis client; ``get_client`` never raises."""

    def __init__(
        self,
        url: str,
        fallback_url: Optional[str] = None,
        client_factory: Optional[Callable[[str], redis.Redis]] = None,
    ):
        self.url = url
        self.fallback_url = fallback_url
        self._factory = client_factory or _default_factory
        self._client: Optional[redis.Redis] = None
        self._last_failure = 0.0

    @property
    def connected(self) -> bool:
        return self._client is not None

    async def _try_connect(self, url: str) -> redis.Redis:
        client = self._factory(url)
        try:
            await client.ping()
        except Exception:
            try:
                await client.aclose()
            except Exception as close_error:
                logger.debug(f"Ignoring close error on failed Redis client: {close_error}")
            raise
        return client

    async def get_client(self) -> Optional[redis.Redis]:
        """Ensure-connected accessor. Returns None when Redis is unavailable."""
        if self._client is not None:
            return self._client

        if time.monotonic() - self._last_failure < RECONNECT_COOLDOWN_SECONDS:
            return None

        logger.info(f"🔄 Connecting to Redis: {mask_url(self.url)}")
        try:
            client = await self._try_connect(self.url)
        except Exception as e:
            client = None
            host = urlparse(self.url).hostname
            if (
                _is_dns_failure(e)
                and self.fallback_url
                and self.fallback_url != self.url
                and host == "redis"
            ):
                logger.warning(
                    f"⚠️ Host '{host}' unreachable; retrying Redis with '{mask_url(self.fallback_url)}'"
                )
                try:
                    client = await self._try_connect(self.fallback_url)
                except Exception as inner:
                    logger.error(f"❌ Fallback Redis connection failed: {inner}")
            else:
                logger.error(f"❌ Redis connection failed: {e}")

        if client is None:
            self._last_failure = time.monotonic()
            logger.warning("⚠️ Redis unavailable - cache and rate limiting disabled (fail-open)")
            return None

        logger.info("Redis connected successfully")
        self._client = client
        return client

    async def reset(self) -> None:
        """Drop the handle after a connection error so the next caller reconnects."""
        client, self._client = self._client, None
        if client is not None:
            try:
                await client.aclose()
            except Exception as e:
                logger.debug(f"Ignoring close error while resetting Redis client: {e}")

    async def close(self) -> None:
        await self.reset()
        logger.info("Redis connection closed")


def is_connection_error(exc: BaseException) -> bool:
    return isinstance(exc, (RedisConnectionError, ConnectionError, OSError))
