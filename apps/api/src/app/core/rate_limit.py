"""
Request rate limiting.

A sliding window per key: Redis sorted sets when the shared client is up,
otherwise a per-process deque of timestamps. Keys are either
``rl:<client ip>:<path>`` for anonymous endpoints (login, password reset)
or whatever the caller builds, e.g. ``rl:admin:decide:<admin id>``.
"""

import logging
import time
from collections import deque
from collections.abc import Callable
from functools import wraps
from typing import Any
from uuid import uuid4

from fastapi import HTTPException, Request, status
from redis.asyncio import Redis
from redis.exceptions import RedisError

from app.core import redis as redis_state

logger = logging.getLogger(__name__)

_windows: dict[str, deque[float]] = {}


class RateLimitExceeded(HTTPException):
    """429 carrying a Retry-After equal to the window length."""

    def __init__(self, limit: int, window_seconds: int):
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "error": "RATE_LIMIT_EXCEEDED",
                "message": f"Too many requests: at most {limit} per {window_seconds} seconds.",
                "retry_after_seconds": window_seconds,
            },
            headers={"Retry-After": str(window_seconds)},
        )


async def _redis_hit(client: Redis, key: str, limit: int, window_seconds: int) -> bool:
    now = time.time()
    pipe = client.pipeline()
    pipe.zremrangebyscore(key, 0, now - window_seconds)
    pipe.zcard(key)
    # members must be unique even for hits in the same instant
    pipe.zadd(key, {f"{now}:{uuid4().hex[:8]}": now})
    pipe.expire(key, window_seconds)
    _, seen, _, _ = await pipe.execute()
    return seen < limit


def _memory_hit(key: str, limit: int, window_seconds: int) -> bool:
    now = time.monotonic()
    window = _windows.setdefault(key, deque())
    while window and window[0] <= now - window_seconds:
        window.popleft()
    if len(window) >= limit:
        return False
    window.append(now)
    return True


async def check_rate_limit(key: str, limit: int, window_seconds: int) -> bool:
    """Record one hit on `key`; False once `limit` hits fall inside the window."""
    client = redis_state.get_redis()
    if client is not None:
        try:
            return await _redis_hit(client, key, limit, window_seconds)
        except RedisError as e:
            logger.warning(f"Redis rate limit check failed for {key}, counting in memory: {e}")
    return _memory_hit(key, limit, window_seconds)


async def enforce_rate_limit(key: str, limit: int, window_seconds: int) -> None:
    """Like check_rate_limit, but raises RateLimitExceeded instead of returning False."""
    if not await check_rate_limit(key, limit, window_seconds):
        logger.warning(f"Rate limit hit for {key} ({limit}/{window_seconds}s)")
        raise RateLimitExceeded(limit, window_seconds)


def client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _find_request(args: tuple, kwargs: dict) -> Request | None:
    candidate = kwargs.get("request")
    if isinstance(candidate, Request):
        return candidate
    return next((arg for arg in args if isinstance(arg, Request)), None)


def rate_limit(
    limit: int = 10,
    window_seconds: int = 60,
    key_func: Callable[[Request], str] | None = None,
):
    """
    Decorate an endpoint that takes a ``request: Request`` parameter.

        @router.post("/login")
        @rate_limit(limit=10, window_seconds=60)
        async def login(request: Request, ...):
            ...

    Without `key_func` the key is the client IP plus the request path.
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            request = _find_request(args, kwargs)
            if request is None:
                raise RuntimeError(f"@rate_limit on {func.__name__} needs a Request argument")

            key = key_func(request) if key_func else f"rl:{client_ip(request)}:{request.url.path}"
            await enforce_rate_limit(key, limit, window_seconds)
            return await func(*args, **kwargs)

        return wrapper

    return decorator


def reset_memory_store() -> None:
    _windows.clear()
