from functools import wraps
from typing import Callable


def read_through(getter: str, setter: str, key_builder: Callable[..., str]):
    """
    Decorator for async service methods returning a cacheable projection.

    ``getter``/``setter`` name the CacheLayer methods for the entity;
    key_builder receives the method's args/kwargs (without self) and returns
    the entity id. The service instance must expose the layer as ``cache``.
    Example:
      @read_through("get_cached_task", "set_cached_task", lambda task_id, **kw: task_id)
      async def get_task(self, task_id): ...
    """

    def decorator(fn: Callable):
        @wraps(fn)
        async def wrapper(self, *args, **kwargs):
            entity_id = key_builder(*args, **kwargs)

            cached = await getattr(self.cache, getter)(entity_id)
            if cached is not None:
                return cached

            value = await fn(self, *args, **kwargs)
            if value is not None:
                await getattr(self.cache, setter)(entity_id, value)
            return value

        return wrapper

    return decorator
