"""
Pytest fixtures - test DB, client, auth (TDD/BDD support).
Challenge: Isolated tests; no Redis, Elasticsearch or Celery broker needed.
"""

import os

# Settings are cached on first import, so the test environment goes first.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SEARCH_INDEXING_ENABLED", "false")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("STORE_RETRY_BACKOFF_MS", "1")
os.environ.setdefault("LOG_FORMAT", "text")

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from marketplace.core.rate_limit import InMemoryCounterStore, RateLimiter
from marketplace.core.security import Identity, create_access_token
from marketplace.db.base import Base
from marketplace.db.models import Item, User
from marketplace.db.session import get_db
from marketplace.main import app
from marketplace.services.identity_service import IdentityService
from marketplace.services.item_service import ItemService


# In-memory SQLite shared by every connection of one engine (one DB per test)
TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine) -> AsyncGenerator[AsyncSession, None]:
    async_session = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )
    async with async_session() as s:
        yield s


@pytest_asyncio.fixture
async def client(session: AsyncSession):
    async def override_get_db():
        yield session

    app.dependency_overrides[get_db] = override_get_db
    previous_limiter = app.state.rate_limiter
    app.state.rate_limiter = RateLimiter(InMemoryCounterStore(), max_requests=1000, window_seconds=60)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
    app.state.rate_limiter = previous_limiter


@pytest_asyncio.fixture
async def alice(session: AsyncSession) -> User:
    return await IdentityService(session).register("alice", "alice@x.com", "pw")


@pytest_asyncio.fixture
async def bob(session: AsyncSession) -> User:
    return await IdentityService(session).register("bob", "bob@x.com", "pw")


def _identity(user: User) -> Identity:
    return Identity(user_id=user.id, username=user.username)


def _headers(user: User) -> dict:
    token = create_access_token(user.id, {"username": user.username})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def alice_identity(alice: User) -> Identity:
    return _identity(alice)


@pytest.fixture
def bob_identity(bob: User) -> Identity:
    return _identity(bob)


@pytest.fixture
def auth_headers(alice: User) -> dict:
    return _headers(alice)


@pytest.fixture
def bob_headers(bob: User) -> dict:
    return _headers(bob)


@pytest_asyncio.fixture
async def bike(session: AsyncSession, alice_identity: Identity) -> Item:
    """An item sold by alice."""
    return await ItemService(session).create(
        alice_identity, "Bike", "A red bike", "Barely used", ["sport", "outdoor"]
    )
