import logging
from typing import NamedTuple

from redis.asyncio import RedisError

from app.cache import keys
from app.cache.store import RedisStore
from app.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


class RateLimitResult(NamedTuple):
    allowed: bool
    remaining: int


class RateLimiter:
    """
    Fixed-window request counter per user and endpoint.

    The window starts with the first request after the previous key
    expired, not on wall-clock boundaries. Fails open when Redis is down.
    """

    def __init__(self, store: RedisStore, settings: Settings | None = None):
        settings = settings or get_settings()
        self.store = store
        self.window = settings.rate_limit_window_seconds
        self.default_max_requests = settings.rate_limit_max_requests

    async def check_rate_limit(
        self, user_id: str, endpoint: str, max_requests: int | None = None
    ) -> RateLimitResult:
        if max_requests is None:
            max_requests = self.default_max_requests

        if not await self.store.ensure_connection():
            return RateLimitResult(allowed=True, remaining=max_requests)

        key = keys.ratelimit_key(user_id, endpoint)
        try:
            current = await self.store.client.incr(key)
            if current == 1:
                await self.store.client.expire(key, self.window)
        except RedisError as e:
            logger.error("Rate limit error for %s: %s", key, e)
            self.store.mark_failed(e)
            return RateLimitResult(allowed=True, remaining=max_requests)

        if current > max_requests:
            logger.info("Rate limit exceeded for %s (%d/%d)", key, current, max_requests)
        return RateLimitResult(
            allowed=current <= max_requests,
            remaining=max(0, max_requests - current),
        )
