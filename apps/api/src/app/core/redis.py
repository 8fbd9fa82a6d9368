"""
Redis connection holder.

Redis is optional for this service: it only backs the request rate
limiter. The lifespan handler tries to connect once at startup; every
caller then asks `get_redis()` and treats None as "use process memory".
"""

import logging

from redis.asyncio import Redis, from_url
from redis.exceptions import RedisError

from app.core.config import settings

logger = logging.getLogger(__name__)

_client: Redis | None = None


async def init_redis(url: str | None = None) -> bool:
    """Connect and PING. Returns False (and keeps no client) when unreachable."""
    global _client
    url = url or settings.redis_url
    candidate = from_url(url, encoding="utf-8", decode_responses=True)
    try:
        await candidate.ping()
    except (RedisError, OSError) as e:
        logger.warning(f"Redis at {url} unreachable: {e}")
        await candidate.aclose()
        return False
    _client = candidate
    return True


def get_redis() -> Redis | None:
    return _client


async def redis_health() -> str:
    """Readiness label for the rate limiter backend."""
    if _client is None:
        return "unavailable"
    try:
        await _client.ping()
    except RedisError as e:
        logger.warning(f"Redis ping failed: {e}")
        return "degraded"
    return "connected"


async def close_redis() -> None:
    global _client
    client, _client = _client, None
    if client is not None:
        await client.aclose()
