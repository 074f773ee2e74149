"""
Fixed-window rate limiting and duplicate-submission suppression.

Both run on the shared Redis connection and fail open: if Redis errors the
request is allowed. When Redis is simply not connected the limiter counts
in process memory instead.
"""

import hashlib
import json
import logging
import time
from typing import Callable, Optional

from fastapi import Request, Response

from .config import RATE_LIMIT_MEMORY_CLEANUP_INTERVAL
from .errors import RateLimitError
from .redis_connection import RedisConnectionManager

logger = logging.getLogger(__name__)

# In-memory fallback store: {key: {"count": int, "reset_at": int}}
memory_store: dict[str, dict] = {}
last_cleanup_time = 0


def route_key(request: Request) -> str:
    return f"{request.method}:{request.url.path}"


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def cleanup_expired_entries(now: int) -> None:
    """Remove expired windows from the memory store, at most once per interval"""
    global last_cleanup_time

    if now - last_cleanup_time < RATE_LIMIT_MEMORY_CLEANUP_INTERVAL:
        return

    expired_keys = [k for k, v in memory_store.items() if v["reset_at"] <= now]
    for k in expired_keys:
        del memory_store[k]

    if expired_keys:
        logger.debug(f"🧹 Cleaned up {len(expired_keys)} expired rate limit entries")

    last_cleanup_time = now


def _count_in_memory(key: str, window_seconds: int) -> tuple[int, int]:
    now = int(time.time())
    cleanup_expired_entries(now)
    entry = memory_store.get(key)
    if not entry or entry["reset_at"] <= now:
        memory_store[key] = {"count": 1, "reset_at": now + window_seconds}
        return 1, window_seconds
    entry["count"] += 1
    return entry["count"], entry["reset_at"] - now


async def check_rate_limit(
    connection: RedisConnectionManager, key: str, window_seconds: int
) -> tuple[int, int]:
    """Increment the window counter for ``key``; returns (count, ttl_seconds)."""
    client = await connection.get_client()
    if client is None:
        return _count_in_memory(key, window_seconds)

    count = await client.incr(key)
    if count == 1:
        await client.expire(key, window_seconds)
        return count, window_seconds
    ttl = await client.ttl(key)
    return count, ttl if ttl > 0 else window_seconds


def create_rate_limiter(
    limit: int,
    window_seconds: int,
    key_prefix: str = "rl",
    identifier: Optional[Callable[[Request], str]] = None,
):
    """
    Create a rate limiter dependency with specific parameters

    Example usage:
        booking_rate_limit = create_rate_limiter(limit=10, window_seconds=60, identifier=client_ip)

        @router.post("", dependencies=[Depends(booking_rate_limit)])
        async def create_booking(...):
            ...
    """

    async def rate_limiter(request: Request, response: Response):
        ident = (identifier(request) if identifier else "global") or "global"
        key = f"{key_prefix}:{route_key(request)}:{ident}"

        try:
            count, ttl = await check_rate_limit(
                request.app.state.redis, key, window_seconds
            )
        except Exception as e:
            logger.warning(f"⚠️ Rate limiting error for {key}, allowing request (fail-open): {e}")
            return

        ttl = ttl if ttl > 0 else window_seconds
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(max(0, limit - count))
        response.headers["X-RateLimit-Reset"] = str(int(time.time()) + ttl)

        if count > limit:
            logger.warning(f"🚫 Rate limit EXCEEDED for {key} - {count}/{limit} requests used")
            raise RateLimitError(
                f"Too Many Requests, you can only call this {limit} times every {window_seconds} seconds.",
                headers={
                    "Retry-After": str(ttl),
                    "X-RateLimit-Limit": str(limit),
                    "X-RateLimit-Remaining": "0",
                },
            )

    return rate_limiter


def submission_fingerprint(body: dict) -> str:
    """Stable SHA-256 over the normalized fields that identify a repeat booking"""
    fingerprint = json.dumps(
        {
            "name": str(body.get("name") or "").strip().lower(),
            "email": str(body.get("email") or "").strip().lower(),
            "treatmentId": body.get("treatmentId"),
            "message": str(body.get("message") or "").strip()[:256],
        },
        sort_keys=True,
    )
    return hashlib.sha256(fingerprint.encode()).hexdigest()


async def claim_submission(
    connection: RedisConnectionManager, body: dict, ttl_seconds: int
) -> bool:
    """
    Record a submission fingerprint with SET NX EX.
    Returns False only when the same payload was already seen within the TTL.
    """
    try:
        client = await connection.get_client()
        if client is None:
            return True
        key = f"dup:booking:{submission_fingerprint(body)}"
        claimed = await client.set(key, "1", nx=True, ex=ttl_seconds)
        return bool(claimed)
    except Exception as e:
        logger.warning(f"⚠️ Duplicate submission guard unavailable: {e}")
        return True
