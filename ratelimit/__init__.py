"""Sliding-window rate limiting backed by Redis sorted sets.

Each request adds a member scored by its timestamp to ``<prefix>:<identifier>``;
members older than the window are trimmed and the remaining ones counted.
"""
import logging
import math
import secrets
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from fastapi import Request, Response
from pydantic import BaseModel
from redis import asyncio as aioredis
from redis.exceptions import RedisError

from auth import token_subject
from config import settings_conf

logger = logging.getLogger(__name__)


class RateLimitExceeded(Exception):
    """Raised when an identifier exceeds its window's request budget."""
    def __init__(self, retry_after: int, limit: int, message: Optional[str] = None):
        self.retry_after = retry_after
        self.limit = limit
        super().__init__(
            message or f"Too many requests. Please try again in {retry_after} seconds."
        )

class RateLimiterUnavailable(Exception):
    """Raised by fail-closed limiters when the store cannot be reached."""
    pass


class RateLimitStatus(BaseModel):
    """Outcome of a permitted request."""
    limit: int
    remaining: int
    reset_at: datetime
    enforced: bool = True

    def headers(self) -> Dict[str, str]:
        if not self.enforced:
            return {}
        return {
            'X-RateLimit-Limit': str(self.limit),
            'X-RateLimit-Remaining': str(self.remaining),
            'X-RateLimit-Reset': self.reset_at.isoformat(),
        }


def client_ip(request: Request) -> str:
    forwarded = request.headers.get('x-forwarded-for')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.client.host if request.client else 'unknown'


def bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get('authorization') or ''
    scheme, _, token = header.partition(' ')
    return token if scheme.lower() == 'bearer' and token else None


async def ip_key(request: Request) -> str:
    return client_ip(request)


async def user_or_ip_key(request: Request) -> str:
    return token_subject(bearer_token(request)) or client_ip(request)


async def ip_email_key(request: Request) -> str:
    """``ip:email`` using the email of a JSON body, if any."""
    email = 'unknown'
    if request.headers.get('content-type', '').startswith('application/json'):
        try:
            body = await request.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get('email'):
            email = str(body['email']).strip().lower()
    return f"{client_ip(request)}:{email}"


class SlidingWindowRateLimiter:
    """Counts requests per identifier over a sliding time window."""

    def __init__(
        self,
        redis: Optional[Any],
        window_seconds: float,
        max_requests: int,
        key_prefix: str = 'ratelimit',
        key_func: Callable = ip_key,
        fail_open: bool = True,
        clock: Callable[[], float] = time.time
    ):
        """Initialize the limiter.

        Args:
            redis: redis.asyncio client, or None when Redis is not configured
            window_seconds: Length of the sliding window
            max_requests: Requests allowed per window
            key_prefix: Prefix of the sorted-set keys
            key_func: Async callable deriving the identifier from a request
            fail_open: Allow requests when the store is unavailable
            clock: Returns the current time in seconds
        """
        if window_seconds <= 0 or max_requests < 1:
            raise ValueError("window_seconds and max_requests must be positive")
        self.redis = redis
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self.key_prefix = key_prefix
        self.key_func = key_func
        self.fail_open = fail_open
        self.clock = clock

    def _unavailable(self, reason: str, now: float) -> RateLimitStatus:
        if not self.fail_open:
            logger.error(f"Rate limiter {self.key_prefix} unavailable, rejecting: {reason}")
            raise RateLimiterUnavailable("Rate limiting is unavailable, try again later")
        logger.warning(f"Rate limiting skipped for {self.key_prefix}: {reason}")
        return RateLimitStatus(
            limit=self.max_requests,
            remaining=self.max_requests,
            reset_at=datetime.fromtimestamp(now + self.window_seconds, timezone.utc),
            enforced=False
        )

    async def hit(self, identifier: str) -> RateLimitStatus:
        """Record one request for ``identifier``.

        Raises:
            RateLimitExceeded: If the window already holds max_requests requests
            RateLimiterUnavailable: If the store is down and the limiter fails closed
        """
        now = self.clock()
        if self.redis is None:
            return self._unavailable("Redis not configured", now)

        key = f"{self.key_prefix}:{identifier}"
        now_ms = int(now * 1000)
        window_ms = int(self.window_seconds * 1000)

        try:
            pipe = self.redis.pipeline(transaction=True)
            pipe.zremrangebyscore(key, 0, now_ms - window_ms)
            pipe.zadd(key, {f"{now_ms}-{secrets.token_hex(4)}": now_ms})
            pipe.zcard(key)
            pipe.expire(key, math.ceil(self.window_seconds))
            results = await pipe.execute()
        except (RedisError, OSError) as e:
            return self._unavailable(str(e), now)

        count = results[2]
        retry_after = math.ceil(self.window_seconds)
        if count > self.max_requests:
            logger.warning(
                f"Rate limit exceeded for {key}: {count}/{self.max_requests}"
            )
            raise RateLimitExceeded(retry_after, self.max_requests)

        return RateLimitStatus(
            limit=self.max_requests,
            remaining=max(0, self.max_requests - count),
            reset_at=datetime.fromtimestamp(now + self.window_seconds, timezone.utc)
        )

    async def check(self, request: Request) -> RateLimitStatus:
        return await self.hit(await self.key_func(request))


# name: (window seconds, max requests, key function, fail open)
PRESETS = {
    'auth': (15 * 60, 5, ip_email_key, True),
    'api': (60, 100, ip_key, True),
    'download': (60, 10, user_or_ip_key, True),
    'upload': (60 * 60, 20, user_or_ip_key, True),
    'payment': (60, 5, user_or_ip_key, False),
    'contact': (60 * 60, 5, ip_email_key, True),
    'chat': (60, 20, ip_key, True),
}


def get_redis(redis_url: Optional[str] = None):
    """Create a Redis client for the configured URL, or None if unset."""
    redis_url = redis_url or settings_conf.get('redis_url')
    if not redis_url:
        return None
    return aioredis.from_url(
        redis_url,
        socket_connect_timeout=2,
        socket_timeout=2
    )


def build_limiters(redis: Optional[Any]) -> Dict[str, SlidingWindowRateLimiter]:
    return {
        name: SlidingWindowRateLimiter(
            redis,
            window_seconds=window,
            max_requests=max_requests,
            key_prefix=f"ratelimit:{name}",
            key_func=key_func,
            fail_open=fail_open
        )
        for name, (window, max_requests, key_func, fail_open) in PRESETS.items()
    }


limiters = build_limiters(get_redis())


def rate_limit(name: str):
    """Build a FastAPI dependency enforcing the named preset."""
    if name not in PRESETS:
        raise KeyError(f"Unknown rate limiter: {name}")

    async def dependency(request: Request, response: Response) -> RateLimitStatus:
        status = await limiters[name].check(request)
        for header, value in status.headers().items():
            response.headers[header] = value
        return status

    return dependency


async def close() -> None:
    """Close the shared Redis connection pool."""
    redis = limiters['api'].redis
    if redis is not None:
        await redis.aclose()


__all__ = [
    'SlidingWindowRateLimiter',
    'RateLimitStatus',
    'RateLimitExceeded',
    'RateLimiterUnavailable',
    'PRESETS',
    'limiters',
    'build_limiters',
    'get_redis',
    'rate_limit',
    'close',
    'client_ip',
    'ip_key',
    'user_or_ip_key',
    'ip_email_key',
]
