"""Test fixtures for the checkout backend."""
from __future__ import annotations

import os
from collections.abc import AsyncIterator, Callable
from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from jose import jwt

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")

from marketplace.core.config import get_settings
from marketplace.db.session import create_schema, dispose_engine
from marketplace.main import app


@pytest.fixture(scope="session")
def db_url(tmp_path_factory: pytest.TempPathFactory) -> str:
    """Provide a temporary SQLite database URL for the test session."""
    db_path = tmp_path_factory.mktemp("db") / "test.db"
    return f"sqlite+aiosqlite:///{db_path}"


@pytest_asyncio.fixture()
async def reset_database(db_url: str) -> AsyncIterator[None]:
    """Drop and recreate the database schema for an isolated test."""
    os.environ["DATABASE_URL"] = db_url
    get_settings.cache_clear()
    get_settings()

    await dispose_engine(db_url)
    await create_schema(db_url, drop=True)
    yield
    await dispose_engine(db_url)


@pytest_asyncio.fixture()
async def client(reset_database: None) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http:
        yield http


def mint_token(subject: str, **claims: str) -> str:
    """Sign a token the way the identity service does."""
    settings = get_settings()
    payload: dict[str, object] = {
        "sub": subject,
        "exp": datetime.now(UTC) + timedelta(minutes=30),
    }
    payload.update(claims)
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


@pytest.fixture()
def auth_headers() -> Callable[..., dict[str, str]]:
    """Build bearer headers for a caller as the identity service would."""

    def _build(user_id: str = "user-1", role: str | None = None) -> dict[str, str]:
        extra = {"role": role} if role else {}
        token = mint_token(user_id, **extra)
        return {"Authorization": f"Bearer {token}"}

    return _build


@pytest.fixture()
def admin_headers(auth_headers: Callable[..., dict[str, str]]) -> dict[str, str]:
    return auth_headers("admin-1", role="admin")
