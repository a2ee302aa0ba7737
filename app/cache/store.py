import asyncio
import logging

from redis.asyncio import Redis, RedisError
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from app.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


class RedisStore:
    """
    Lazily connected Redis handle shared by the cache components.

    One instance is created per worker at startup and injected into the
    cache layer, session registry, rate limiter and stats. Nothing here
    raises: an unreachable server is reported as ``False`` from
    ``ensure_connection`` and callers degrade from there.

    After a failed attempt no new attempt is made for
    ``retry_interval`` seconds, so an outage costs one connect timeout
    per interval instead of one per request.
    """

    def __init__(
        self,
        dsn: str | None = None,
        client: Redis | None = None,
        pool_size: int | None = None,
        retry_interval: float | None = None,
        settings: Settings | None = None,
    ):
        settings = settings or get_settings()
        self.dsn = dsn or settings.redis_dsn
        self.pool_size = pool_size or settings.redis_pool_size
        self.retry_interval = (
            settings.redis_retry_interval_seconds
            if retry_interval is None
            else retry_interval
        )
        self._client: Redis | None = client
        self._connected = False
        self._closed = False
        self._last_failure: float | None = None

    @property
    def client(self) -> Redis | None:
        return self._client

    @property
    def connected(self) -> bool:
        return self._connected and not self._closed

    def _build_client(self) -> Redis:
        return Redis.from_url(
            self.dsn,
            encoding="utf-8",
            decode_responses=True,
            max_connections=self.pool_size,
            socket_connect_timeout=5,
            socket_keepalive=True,
            health_check_interval=30,
        )

    def _now(self) -> float:
        return asyncio.get_running_loop().time()

    async def ensure_connection(self) -> bool:
        """Return True if a live connection exists or was just established."""
        if self.connected:
            return True

        if self._last_failure is not None and (
            self._now() - self._last_failure < self.retry_interval
        ):
            return False

        try:
            if self._client is None or self._closed:
                self._client = self._build_client()
                self._closed = False

            await self._client.ping()
            self._connected = True
            self._last_failure = None
            logger.info("Redis connection established")
            return True

        except (RedisError, OSError) as e:
            self._connected = False
            self._last_failure = self._now()
            logger.error("Redis connection failed: %s", e)
            return False

    def mark_failed(self, error: Exception):
        """
        Report a failed command. Connection-level errors drop the link and
        start the retry interval; command errors such as WRONGTYPE do not.
        """
        if not isinstance(error, (RedisConnectionError, RedisTimeoutError, OSError)):
            return
        if self._connected:
            logger.warning("Redis connection lost: %s", error)
        self._connected = False
        self._last_failure = self._now()

    async def ping(self) -> bool:
        """Round-trip check used by the health endpoint."""
        if not await self.ensure_connection():
            return False
        try:
            return bool(await self._client.ping())
        except RedisError as e:
            logger.warning("Redis PING failed: %s", e)
            self.mark_failed(e)
            return False

    async def close(self):
        """Graceful shutdown of the connection pool."""
        if self._client is not None and not self._closed:
            try:
                await self._client.aclose()
                logger.info("Redis connection closed")
            except Exception as e:
                logger.error("Error closing Redis: %s", e)
        self._closed = True
        self._connected = False
