"""Pytest configuration and fixtures for the task tracker.

Redis is emulated with fakeredis (one FakeServer per test, so no state is
shared); the database is an in-memory aiosqlite engine. HTTP tests run
against app.main:app over ASGI without its lifespan: the fixtures attach
the cache components and override the DB dependency instead.
"""

import os

os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret-key-with-at-least-32-bytes!!")

import fakeredis
import fakeredis.aioredis
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.pool import StaticPool

from app.cache.layer import CacheLayer
from app.cache.rate_limit import RateLimiter
from app.cache.sessions import SessionRegistry
from app.cache.store import RedisStore
from app.database import build_engine, build_sessionmaker, create_db_and_tables, get_db
from app.main import app, init_cache_components
from app.models import UserCreate, UserRole
from app.services.user_service import UserService


@pytest.fixture
def fake_server():
    return fakeredis.FakeServer()


@pytest.fixture
async def redis_client(fake_server):
    client = fakeredis.aioredis.FakeRedis(server=fake_server, decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
def store(redis_client) -> RedisStore:
    return RedisStore(client=redis_client)


@pytest.fixture
async def down_store():
    """A store whose server refuses every connection."""
    server = fakeredis.FakeServer()
    server.connected = False
    client = fakeredis.aioredis.FakeRedis(server=server, decode_responses=True)
    yield RedisStore(client=client)
    await client.aclose()


@pytest.fixture
def cache(store) -> CacheLayer:
    return CacheLayer(store)


@pytest.fixture
def sessions(store) -> SessionRegistry:
    return SessionRegistry(store)


@pytest.fixture
def limiter(store) -> RateLimiter:
    return RateLimiter(store)


@pytest.fixture
async def engine():
    engine = build_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_db_and_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_sessionmaker(engine)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory, store):
    """Async HTTP client against the FastAPI app (ASGI)."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    init_cache_components(app, store)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def user_auth(client) -> dict:
    """Registered regular user: {"token": ..., "user": {...}}."""
    response = await client.post(
        "/api/auth/register",
        json={"email": "alice@example.com", "name": "alice", "password": "password123"},
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
async def admin_auth(client, session_factory, cache, sessions) -> dict:
    """Admin created directly in the database, then logged in over HTTP."""
    async with session_factory() as session:
        await UserService(session, cache, sessions).create_user(
            UserCreate(email="admin@example.com", name="admin", password="adminpass123"),
            role=UserRole.ADMIN,
        )
    response = await client.post(
        "/api/auth/login",
        json={"email": "admin@example.com", "password": "adminpass123"},
    )
    assert response.status_code == 200, response.text
    return response.json()
