import asyncio
import json
import logging
from typing import Any

from pydantic import TypeAdapter, ValidationError
from redis.asyncio import RedisError

from app.cache import keys
from app.cache.store import RedisStore
from app.core.config import Settings, get_settings
from app.models import TaskRead, UserRead

logger = logging.getLogger(__name__)

_user_adapter = TypeAdapter(UserRead)
_task_adapter = TypeAdapter(TaskRead)
_tasks_adapter = TypeAdapter(list[TaskRead])


class CacheLayer:
    """
    Cache-aside policies for the user, task list and task projections.

    Writes never update cached entries, they invalidate them; the next read
    repopulates. Every method degrades instead of raising:

    - Redis unreachable: ``get_*`` returns None, ``set_*``/``invalidate_*``
      do nothing.
    - Payload unreadable or from another schema version: treated as a miss.
    - One of several deletes failing: the others still apply, the stale key
      expires with its TTL.

    Payloads are stored as ``{"v": <schema version>, "data": <projection>}``.
    """

    def __init__(self, store: RedisStore, settings: Settings | None = None):
        self.store = store
        settings = settings or get_settings()
        self.schema_version = settings.cache_schema_version
        self.user_ttl = settings.user_cache_ttl_seconds
        self.tasks_ttl = settings.tasks_cache_ttl_seconds
        self.task_ttl = settings.task_cache_ttl_seconds

    def _serialize(self, adapter: TypeAdapter, value: Any) -> str:
        data = adapter.dump_python(value, mode="json")
        return json.dumps({"v": self.schema_version, "data": data})

    def _deserialize(self, adapter: TypeAdapter, raw: str) -> Any | None:
        try:
            envelope = json.loads(raw)
            if envelope.get("v") != self.schema_version:
                logger.debug("Cached payload has schema version %s", envelope.get("v"))
                return None
            return adapter.validate_python(envelope["data"])
        except (
            json.JSONDecodeError,
            ValidationError,
            AttributeError,
            KeyError,
            TypeError,
        ) as e:
            logger.warning("Discarding unreadable cache payload: %s", e)
            return None

    async def _get(self, key: str, adapter: TypeAdapter) -> Any | None:
        if not await self.store.ensure_connection():
            return None
        try:
            raw = await self.store.client.get(key)
        except RedisError as e:
            logger.error("Redis GET error for %s: %s", key, e)
            self.store.mark_failed(e)
            return None

        if raw is None:
            logger.debug("Cache miss: %s", key)
            return None
        logger.debug("Cache hit: %s", key)
        return self._deserialize(adapter, raw)

    async def _set(self, key: str, adapter: TypeAdapter, value: Any, ttl: int):
        if not await self.store.ensure_connection():
            return
        try:
            await self.store.client.set(key, self._serialize(adapter, value), ex=ttl)
        except RedisError as e:
            logger.error("Redis SET error for %s: %s", key, e)
            self.store.mark_failed(e)

    async def delete_many(self, *cache_keys: str):
        """
        Delete keys concurrently, best effort.

        Each key is a separate DEL so a failure on one does not stop the
        others; failures are logged.
        """
        if not cache_keys or not await self.store.ensure_connection():
            return
        results = await asyncio.gather(
            *(self.store.client.delete(key) for key in cache_keys),
            return_exceptions=True,
        )
        for key, result in zip(cache_keys, results):
            if isinstance(result, Exception):
                logger.error("Redis DELETE error for %s: %s", key, result)
                self.store.mark_failed(result)

    # Users
    async def get_cached_user(self, user_id: str) -> UserRead | None:
        return await self._get(keys.user_key(user_id), _user_adapter)

    async def set_cached_user(self, user_id: str, user: UserRead):
        await self._set(keys.user_key(user_id), _user_adapter, user, self.user_ttl)

    async def invalidate_user_cache(self, user_id: str):
        await self.delete_many(keys.user_key(user_id))

    # Task lists
    async def get_cached_tasks(self, user_id: str) -> list[TaskRead] | None:
        return await self._get(keys.tasks_key(user_id), _tasks_adapter)

    async def set_cached_tasks(self, user_id: str, tasks: list[TaskRead]):
        await self._set(keys.tasks_key(user_id), _tasks_adapter, tasks, self.tasks_ttl)

    async def invalidate_tasks_cache(self, user_id: str):
        await self.delete_many(keys.tasks_key(user_id))

    # Individual tasks
    async def get_cached_task(self, task_id: str) -> TaskRead | None:
        return await self._get(keys.task_key(task_id), _task_adapter)

    async def set_cached_task(self, task_id: str, task: TaskRead):
        await self._set(keys.task_key(task_id), _task_adapter, task, self.task_ttl)

    async def invalidate_task_cache(self, task_id: str, user_id: str):
        """Drop a task together with its owner's task list."""
        await self.delete_many(keys.task_key(task_id), keys.tasks_key(user_id))
