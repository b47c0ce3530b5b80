"""
Fixed-window rate limiting for the availability endpoints
Counts live in process memory; with the redis backend they are seeded from
and periodically written back to Redis so API workers share one budget
"""

import logging
import time
from threading import Lock
from typing import Optional

import redis
from fastapi import HTTPException, Request, status

from .config import RATE_LIMIT_BACKEND
from .locking import get_redis_client

logger = logging.getLogger(__name__)

# {key: {"count": int, "reset_time": int, "last_redis_sync": int}}
memory_cache: dict[str, dict] = {}
cache_lock = Lock()

REDIS_SYNC_INTERVAL = 10  # seconds between write-backs of a window's count
CLEANUP_INTERVAL = 60
last_cleanup_time = 0


def cleanup_expired_cache():
    """Drop windows that have already reset"""
    global last_cleanup_time
    current_time = int(time.time())
    if current_time - last_cleanup_time < CLEANUP_INTERVAL:
        return

    with cache_lock:
        expired = [k for k, v in memory_cache.items() if current_time >= v["reset_time"]]
        for k in expired:
            del memory_cache[k]
    if expired:
        logger.debug(f"🧹 Cleaned up {len(expired)} expired rate limit windows")
    last_cleanup_time = current_time


def _new_window(key: str, window_seconds: int, now: int, client: Optional[redis.Redis]) -> dict:
    if client is not None:
        try:
            count = client.get(key)
            ttl = client.ttl(key)
            if count and ttl > 0:
                return {"count": int(count), "reset_time": now + ttl, "last_redis_sync": now}
        except redis.RedisError as e:
            logger.warning(f"⚠️ Failed to load rate limit window from Redis, using memory only: {e}")
    return {"count": 0, "reset_time": now + window_seconds, "last_redis_sync": now}


def check_rate_limit(
    key: str, limit: int, window_seconds: int, client: Optional[redis.Redis] = None
) -> tuple[bool, int, int]:
    """
    Count one request against ``key``

    Returns:
        Tuple of (is_allowed, current_count, seconds_until_reset)
    """
    now = int(time.time())
    cleanup_expired_cache()

    with cache_lock:
        entry = memory_cache.get(key)
        if entry is None:
            entry = memory_cache[key] = _new_window(key, window_seconds, now, client)

        if now >= entry["reset_time"]:
            entry.update(count=0, reset_time=now + window_seconds, last_redis_sync=0)

        is_allowed = entry["count"] < limit
        if is_allowed:
            entry["count"] += 1

        if client is not None and now - entry["last_redis_sync"] >= REDIS_SYNC_INTERVAL:
            try:
                client.set(key, entry["count"], ex=max(1, entry["reset_time"] - now))
                entry["last_redis_sync"] = now
            except redis.RedisError as e:
                logger.warning(f"⚠️ Failed to sync rate limit window to Redis: {e}")

        return is_allowed, entry["count"], max(0, entry["reset_time"] - now)


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def create_rate_limiter(limit: int, window_seconds: int, key_prefix: str = "rate_limit"):
    """
    Build a per-IP rate limit dependency

        rate_limit_availability = create_rate_limiter(20, 60, "availability")

        @router.post("/check", dependencies=[Depends(rate_limit_availability)])
    """

    async def rate_limiter(request: Request):
        try:
            client = get_redis_client() if RATE_LIMIT_BACKEND == "redis" else None
        except Exception as e:
            logger.error(f"❌ Rate limit backend unavailable: {e}")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Rate limiting service temporarily unavailable",
            ) from e

        key = f"{key_prefix}:{client_ip(request)}"
        is_allowed, count, ttl = check_rate_limit(key, limit, window_seconds, client)
        if not is_allowed:
            logger.warning(f"🚫 Rate limit exceeded for {key} - {count}/{limit} requests")
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=f"Rate limit exceeded. Maximum {limit} requests per {window_seconds} seconds.",
                headers={
                    "Retry-After": str(ttl),
                    "X-RateLimit-Limit": str(limit),
                    "X-RateLimit-Remaining": "0",
                },
            )
        request.state.rate_limit_remaining = limit - count

    return rate_limiter
