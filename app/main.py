import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.cache.layer import CacheLayer
from app.cache.rate_limit import RateLimiter
from app.cache.sessions import SessionRegistry
from app.cache.store import RedisStore
from app.core.config import get_settings
from app.core.security import warn_on_default_secret
from app.database import create_db_and_tables
from app.routers import admin, auth, system, tasks


def init_cache_components(app: FastAPI, store: RedisStore):
    """Attach the cache components sharing one store handle to the app."""
    app.state.redis_store = store
    app.state.cache = CacheLayer(store)
    app.state.sessions = SessionRegistry(store)
    app.state.rate_limiter = RateLimiter(store)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    warn_on_default_secret(settings)

    await create_db_and_tables()
    store = RedisStore(settings=settings)
    init_cache_components(app, store)
    # connection is lazy; this only logs whether Redis is reachable at boot
    await store.ensure_connection()
    yield
    await store.close()


app = FastAPI(
    title="Task Tracker API",
    description="Multi-user task tracking API with PostgreSQL, SQLModel and Redis",
    swagger_ui_parameters={"displayRequestDuration": True},
    version="1.0.0",
    lifespan=lifespan,
)

# Include routers
app.include_router(system.router)
app.include_router(auth.router)
app.include_router(tasks.router)
app.include_router(admin.router)
