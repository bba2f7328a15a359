"""
Shared fixtures for API and service tests.

The app runs against an in-memory SQLite database (foreign keys on) and an
in-memory key-value store, wired in through FastAPI dependency overrides.
"""

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SESSION_BACKEND", "memory")
os.environ.setdefault("AUTH_TRANSPORT", "session")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("OPENAI_API_KEY", "")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from jobtracker.auth import get_session_store
from jobtracker.database import Base, enable_sqlite_foreign_keys, get_db
from jobtracker.main import app
from jobtracker.services.store import InMemoryKeyValueStore

PASSWORD = "Secret123"


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    import jobtracker.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
async def client(session_factory, store):
    """HTTP client bound to the app with test database and store."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_store] = lambda: store

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def register(client: AsyncClient, email: str = "alice@example.com", password: str = PASSWORD,
                   display_name: str = "Alice Example"):
    return await client.post(
        "/api/auth/register",
        json={"email": email, "password": password, "display_name": display_name},
    )


async def fetch_csrf(client: AsyncClient) -> str:
    response = await client.get("/api/auth/csrf-token")
    assert response.status_code == 200
    return response.json()["csrfToken"]


async def login(client: AsyncClient, email: str = "alice@example.com", password: str = PASSWORD):
    token = await fetch_csrf(client)
    return await client.post(
        "/api/auth/login",
        json={"email": email, "password": password},
        headers={"X-CSRF-Token": token},
    )


@pytest.fixture
async def auth_client(client):
    """
    Client logged in as alice@example.com.

    The session's CSRF token is stored on the client as `client.csrf`.
    """
    await register(client)
    response = await login(client)
    assert response.status_code == 200
    client.csrf = response.json()["csrfToken"]
    client.headers["X-CSRF-Token"] = client.csrf
    return client


@pytest.fixture
async def other_client(client):
    """Second browser, logged in as bob@example.com against the same app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        await register(ac, email="bob@example.com", display_name="Bob Example")
        response = await login(ac, email="bob@example.com")
        assert response.status_code == 200
        ac.headers["X-CSRF-Token"] = response.json()["csrfToken"]
        yield ac
