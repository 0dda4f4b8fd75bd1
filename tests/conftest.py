"""Test fixtures — fresh tables per test, a tenant token, and a fake webhook receiver."""

import os
from collections.abc import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Force SQLite test database *before* any app import
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test_hookline.db"
os.environ["SECRET_KEY"] = "test-secret-key"

from hookline.database import Base, async_session, engine  # noqa: E402
from hookline.main import app  # noqa: E402
from hookline.services.auth import create_access_token  # noqa: E402

ORG_ID = "org-1"
OTHER_ORG_ID = "org-2"


@pytest_asyncio.fixture(autouse=True)
async def _setup_db():
    """Create all tables before each test, drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    # Each test gets its own event loop; pooled connections must not leak across
    await engine.dispose()


@pytest_asyncio.fixture
async def db():
    async with async_session() as session:
        yield session


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {create_access_token(ORG_ID)}"}


@pytest.fixture
def other_auth_headers():
    return {"Authorization": f"Bearer {create_access_token(OTHER_ORG_ID)}"}


class Receiver:
    """Stands in for tenant endpoints: records requests, answers per URL."""

    def __init__(self, default_status: int = 200, body: str = "ok"):
        self.default_status = default_status
        self.body = body
        self.routes: dict[str, object] = {}
        self.requests: list[httpx.Request] = []

    def route(self, url: str, outcome):
        """``outcome`` is a status code, or an exception to raise."""
        self.routes[url] = outcome

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        outcome = self.routes.get(str(request.url), self.default_status)
        if isinstance(outcome, Exception):
            raise outcome
        return httpx.Response(outcome, text=self.body)

    def for_url(self, url: str) -> list[httpx.Request]:
        return [r for r in self.requests if str(r.url) == url]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


@pytest.fixture
def receiver():
    return Receiver()
