"""Redis store for distributed locks and rate counters.

Handles:
- Distributed locks (one pricing sync at a time)
- Fixed-window counters (admin rate limits)

TTL policies:
- Pricing sync lock: PRICING_SYNC_LOCK_TTL (default 10 minutes)
- Inventory refresh window: 1 hour
"""

import logging
import uuid

import redis.asyncio as redis

from buyback.settings import get_settings

# TTL constants (in seconds)
TTL_SYNC_LOCK = 600  # 10 minutes
TTL_RATE_WINDOW = 3600  # 1 hour

# Key prefixes
PREFIX_LOCK = "lock:"
PREFIX_RATE = "rate:"

# Delete the lock only if it still holds our token (GET + DEL atomically)
_RELEASE_LOCK_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""

# Redis client (initialized on startup)
_redis: redis.Redis | None = None
logger = logging.getLogger("uvicorn.error")


async def init_redis() -> None:
    """Initialize Redis connection."""
    global _redis
    settings = get_settings()
    _redis = redis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
    )
    # Validate connectivity early (especially for `rediss://` in production).
    await _redis.ping()
    logger.info("Redis connected")


async def close_redis() -> None:
    """Close Redis connection."""
    global _redis
    if _redis:
        await _redis.aclose()
        _redis = None


def _get_redis() -> redis.Redis:
    """Get Redis client instance."""
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis


# ============================================================
# Distributed locks
# ============================================================


async def acquire_lock(key: str, ttl: int = TTL_SYNC_LOCK) -> str | None:
    """Acquire a distributed lock.

    Args:
        key: Lock key (e.g., "pricing-sync").
        ttl: Lock timeout in seconds.

    Returns:
        Owner token if the lock was acquired, None if already locked.
        Pass the token to release_lock().
    """
    lock_key = f"{PREFIX_LOCK}{key}"
    token = uuid.uuid4().hex
    # SET NX (only if not exists) with TTL
    result = await _get_redis().set(lock_key, token, nx=True, ex=ttl)
    return token if result else None


async def release_lock(key: str, token: str) -> bool:
    """Release a distributed lock held with `token`.

    A lock that expired and was taken by another run is left alone.

    Returns:
        True if the lock was deleted.
    """
    deleted = await _get_redis().eval(_RELEASE_LOCK_SCRIPT, 1, f"{PREFIX_LOCK}{key}", token)
    if not deleted:
        logger.warning(f"Lock {key!r} expired or is held by another owner, not releasing")
    return bool(deleted)


async def is_locked(key: str) -> bool:
    """Check if a lock exists.

    Args:
        key: Lock key.

    Returns:
        True if locked, False otherwise.
    """
    result = await _get_redis().get(f"{PREFIX_LOCK}{key}")
    return result is not None


# ============================================================
# Rate counters (fixed window)
# ============================================================


async def hit_rate_counter(key: str, window: int = TTL_RATE_WINDOW) -> int:
    """Increment a fixed-window counter and return the count in this window.

    The window starts with the first hit; the key expires `window` seconds later.
    """
    rate_key = f"{PREFIX_RATE}{key}"
    client = _get_redis()
    count = await client.incr(rate_key)
    if count == 1:
        await client.expire(rate_key, window)
    return int(count)
