import logging
from typing import Any

from pydantic import BaseModel
from redis.asyncio import RedisError, ResponseError

from app.cache.store import RedisStore

logger = logging.getLogger(__name__)


class CacheStats(BaseModel):
    connected: bool
    db_size: int | None = None
    info: dict[str, Any] | None = None
    error: str | None = None


async def get_cache_stats(store: RedisStore) -> CacheStats:
    """Snapshot of Redis connectivity and size. Read-only, never raises."""
    if not await store.ensure_connection():
        return CacheStats(connected=False)

    try:
        db_size = await store.client.dbsize()
    except RedisError as e:
        logger.error("Cache stats error: %s", e)
        store.mark_failed(e)
        return CacheStats(connected=False, error=str(e))

    try:
        info = await store.client.info("stats")
    except ResponseError as e:
        # server is up but refuses INFO (renamed or disabled command)
        logger.warning("INFO unavailable: %s", e)
        info = None
    except RedisError as e:
        logger.error("Cache stats error: %s", e)
        store.mark_failed(e)
        return CacheStats(connected=False, error=str(e))

    return CacheStats(connected=True, db_size=db_size, info=info)
