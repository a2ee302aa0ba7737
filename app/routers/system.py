import logging
from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app.cache.stats import CacheStats, get_cache_stats
from app.core.config import SettingsDep
from app.database import check_database
from app.dependencies import AdminUser, DbDep, StoreDep

logger = logging.getLogger(__name__)

router = APIRouter(tags=["system"])


@router.get("/")
async def root(settings: SettingsDep):
    return {
        "message": f"Welcome to {settings.app_name}",
        "docs": "/docs",
        "version": "1.0.0",
    }


@router.get("/health")
async def health_check(db: DbDep, store: StoreDep):
    """
    Database and Redis reachability. Only the database decides the overall
    status; Redis being down leaves the service degraded in latency only.
    """
    database_ok = await check_database(db)
    redis_ok = await store.ping()
    if not database_ok:
        logger.error("Health check: database unreachable")

    body = {
        "status": "ok" if database_ok else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {
            "database": "healthy" if database_ok else "unhealthy",
            "redis": "healthy" if redis_ok else "unhealthy",
        },
    }
    return JSONResponse(content=body, status_code=200 if database_ok else 503)


@router.get("/api/cache/stats", response_model=CacheStats, response_model_exclude_none=True)
async def cache_stats(admin: AdminUser, store: StoreDep):
    return await get_cache_stats(store)
