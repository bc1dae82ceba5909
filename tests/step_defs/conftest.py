"""
BDD harness - one event loop, database and HTTP client per scenario.
pytest-bdd calls steps synchronously, so async work is driven on the
scenario's own loop.
"""

import asyncio

import pytest
from httpx import ASGITransport, AsyncClient
from pytest_bdd import parsers, then
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from marketplace.core.rate_limit import InMemoryCounterStore, RateLimiter
from marketplace.db.base import Base
from marketplace.db.session import get_db
from marketplace.main import app


class Api:
    def __init__(self):
        self.loop = asyncio.new_event_loop()
        self.engine = create_async_engine(
            "sqlite+aiosqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
        )
        self.run(self._create_schema())
        self.session = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )()
        self.client = AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
        self.response = None
        self.tokens: dict[str, str] = {}
        self.slugs: dict[str, str] = {}
        self.comments: dict[str, int] = {}

    async def _create_schema(self):
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    def run(self, coro):
        return self.loop.run_until_complete(coro)

    def request(self, method: str, path: str, user: str | None = None, **kwargs):
        headers = {"Authorization": f"Bearer {self.tokens[user]}"} if user else {}
        self.response = self.run(self.client.request(method, path, headers=headers, **kwargs))
        return self.response

    def close(self):
        self.run(self.client.aclose())
        self.run(self.session.close())
        self.run(self.engine.dispose())
        self.loop.close()


@pytest.fixture
def api():
    harness = Api()

    async def override_get_db():
        yield harness.session

    app.dependency_overrides[get_db] = override_get_db
    previous_limiter = app.state.rate_limiter
    app.state.rate_limiter = RateLimiter(InMemoryCounterStore(), max_requests=1000, window_seconds=60)
    yield harness
    app.dependency_overrides.clear()
    app.state.rate_limiter = previous_limiter
    harness.close()


@then(parsers.parse("the response status should be {status:d}"))
def status_is(api, status):
    assert api.response.status_code == status
