from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from fastapi import Depends
from typing_extensions import Annotated

DEFAULT_JWT_SECRET = "change-me-in-production-please-use-32-bytes"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = "Task Tracker API"
    log_level: str = "INFO"

    database_url: str = "sqlite+aiosqlite:///./tasks.db"

    redis_dsn: str = "redis://localhost:6379/0"
    redis_pool_size: int = 5
    redis_retry_interval_seconds: float = 5.0  # suppress reconnects after a failure

    # per-entity cache TTLs (seconds)
    user_cache_ttl_seconds: int = 3600
    tasks_cache_ttl_seconds: int = 300
    task_cache_ttl_seconds: int = 600
    session_ttl_seconds: int = 7 * 24 * 60 * 60
    cache_schema_version: int = 1

    rate_limit_max_requests: int = 100
    rate_limit_window_seconds: int = 60

    jwt_secret: str = DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    token_expire_days: int = 7
    bcrypt_rounds: int = 12


@lru_cache
def get_settings() -> Settings:
    return Settings()


SettingsDep = Annotated[Settings, Depends(get_settings)]
