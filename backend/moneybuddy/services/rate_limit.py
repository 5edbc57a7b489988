import logging
import time
from typing import Protocol

import redis.asyncio as redis
from redis.exceptions import RedisError
from fastapi import Depends, HTTPException, Request, status

logger = logging.getLogger(__name__)


class RateLimiter(Protocol):
    async def allow(self, identifier: str) -> bool: ...


class RedisFixedWindowLimiter:
    """Fixed-window request counter stored in Redis and shared by all processes."""

    def __init__(self, client: redis.Redis, times: int, seconds: int, prefix: str = "ratelimit"):
        self.client = client
        self.times = times
        self.seconds = seconds
        self.prefix = prefix

    def _key(self, identifier: str, now: float) -> str:
        window = int(now // self.seconds)
        return f"{self.prefix}:{identifier}:{window}"

    async def allow(self, identifier: str) -> bool:
        key = self._key(identifier, time.time())
        try:
            count = await self.client.incr(key)
            if count == 1:
                await self.client.expire(key, self.seconds)
        except RedisError as e:
            # Fail open when the store is unreachable
            logger.warning(f"Rate limiter unavailable, allowing request: {e}")
            return True
        return count <= self.times


def client_identifier(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def get_rate_limiter(request: Request) -> RateLimiter | None:
    return getattr(request.app.state, "rate_limiter", None)


async def enforce_rate_limit(
    request: Request, limiter: RateLimiter | None = Depends(get_rate_limiter)
) -> None:
    if limiter is None:
        return
    identifier = client_identifier(request)
    if not await limiter.allow(identifier):
        logger.warning(f"Rate limit exceeded for {identifier}")
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail="Rate limit exceeded"
        )
