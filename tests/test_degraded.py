"""Behaviour with Redis unreachable: misses, no-ops and fail-open answers."""

import pytest

from app.cache.layer import CacheLayer
from app.cache.rate_limit import RateLimiter, RateLimitResult
from app.cache.sessions import SessionRegistry
from factories import make_task, make_user


class TestStoreNeverReachable:
    async def test_get_returns_none(self, down_store) -> None:
        cache = CacheLayer(down_store)

        assert await cache.get_cached_user("u1") is None
        assert await cache.get_cached_tasks("u1") is None
        assert await cache.get_cached_task("t1") is None

    async def test_set_and_invalidate_do_not_raise(self, down_store) -> None:
        cache = CacheLayer(down_store)

        await cache.set_cached_user("u1", make_user())
        await cache.set_cached_tasks("u1", [make_task()])
        await cache.set_cached_task("t1", make_task())
        await cache.invalidate_user_cache("u1")
        await cache.invalidate_tasks_cache("u1")
        await cache.invalidate_task_cache("t1", "u1")

    async def test_sessions_fail_open(self, down_store) -> None:
        sessions = SessionRegistry(down_store)

        await sessions.store_session("u1", "tok", "jwt")
        assert await sessions.validate_session("u1", "never-issued") is True
        await sessions.revoke_session("u1", "tok")
        assert await sessions.revoke_all_user_sessions("u1") == 0

    async def test_rate_limit_fails_open(self, down_store) -> None:
        limiter = RateLimiter(down_store)

        for _ in range(5):
            result = await limiter.check_rate_limit("u1", "tasks", 3)
        assert result == RateLimitResult(allowed=True, remaining=3)


class TestStoreLostAfterConnecting:
    """The connection was established, then the server went away."""

    @pytest.fixture
    async def lost(self, store, fake_server):
        assert await store.ensure_connection() is True
        fake_server.connected = False
        return store

    async def test_get_returns_none(self, lost) -> None:
        assert await CacheLayer(lost).get_cached_user("u1") is None

    async def test_writes_do_not_raise(self, lost) -> None:
        cache = CacheLayer(lost)

        await cache.set_cached_user("u1", make_user())
        await cache.invalidate_task_cache("t1", "u1")

    async def test_sessions_fail_open(self, lost) -> None:
        sessions = SessionRegistry(lost)

        assert await sessions.validate_session("u1", "never-issued") is True
        assert await sessions.revoke_all_user_sessions("u1") == 0

    async def test_rate_limit_fails_open(self, lost) -> None:
        result = await RateLimiter(lost).check_rate_limit("u1", "tasks", 3)

        assert result == RateLimitResult(allowed=True, remaining=3)

    async def test_failed_command_suppresses_reconnect(self, lost, fake_server) -> None:
        assert await CacheLayer(lost).get_cached_user("u1") is None
        assert lost.connected is False

        fake_server.connected = True

        assert await lost.ensure_connection() is False
        assert await SessionRegistry(lost).validate_session("u1", "never-issued") is True
