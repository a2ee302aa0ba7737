from typing import Callable

from fastapi import Depends, HTTPException, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel.ext.asyncio.session import AsyncSession
from typing_extensions import Annotated

from app.cache.layer import CacheLayer
from app.cache.rate_limit import RateLimiter
from app.cache.sessions import SessionRegistry
from app.cache.store import RedisStore
from app.core.security import TokenPayload, decode_access_token
from app.database import get_db
from app.models import UserRole

bearer_scheme = HTTPBearer(auto_error=False)


# Cache components are created once in the lifespan and kept on app.state
def get_store(request: Request) -> RedisStore:
    return request.app.state.redis_store


def get_cache(request: Request) -> CacheLayer:
    return request.app.state.cache


def get_sessions(request: Request) -> SessionRegistry:
    return request.app.state.sessions


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


DbDep = Annotated[AsyncSession, Depends(get_db)]
StoreDep = Annotated[RedisStore, Depends(get_store)]
CacheDep = Annotated[CacheLayer, Depends(get_cache)]
SessionsDep = Annotated[SessionRegistry, Depends(get_sessions)]


async def get_current_user(
    sessions: SessionsDep,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> TokenPayload:
    """Resolve the bearer token to its claims, rejecting revoked sessions."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    if not await sessions.validate_session(payload.user_id, payload.token_id):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session has been revoked",
        )
    return payload


CurrentUser = Annotated[TokenPayload, Depends(get_current_user)]


async def require_admin(user: CurrentUser) -> TokenPayload:
    if user.role != UserRole.ADMIN.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user


AdminUser = Annotated[TokenPayload, Depends(require_admin)]


def rate_limit(endpoint: str) -> Callable:
    """Per-user fixed-window limit for a group of routes."""

    async def dependency(
        response: Response,
        user: CurrentUser,
        limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
    ):
        result = await limiter.check_rate_limit(user.user_id, endpoint)
        limit = str(limiter.default_max_requests)
        if not result.allowed:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests",
                headers={"X-RateLimit-Limit": limit, "X-RateLimit-Remaining": "0"},
            )
        response.headers["X-RateLimit-Limit"] = limit
        response.headers["X-RateLimit-Remaining"] = str(result.remaining)

    return dependency
