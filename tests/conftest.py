"""Pytest configuration and fixtures for mailgate.

Environment is set before the app is imported so Settings validation
passes. Database fixtures bind the persistence module to a fresh SQLite
file (aiosqlite) per test; Postgres-only tests use the requires_db marker.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-0123456789abcdef")
os.environ.setdefault("REFRESH_TOKEN_SECRET", "test-refresh-secret-0123456789abcdef")
os.environ.setdefault("GOOGLE_CLIENT_ID", "google-client-id")
os.environ.setdefault("GOOGLE_CLIENT_SECRET", "google-client-secret")
os.environ.setdefault("MICROSOFT_CLIENT_ID", "microsoft-client-id")
os.environ.setdefault("MICROSOFT_CLIENT_SECRET", "microsoft-client-secret")
os.environ.setdefault("FRONTEND_URL", "http://frontend.test")
os.environ.setdefault("TOKEN_CIPHER", "none")

from collections.abc import AsyncIterator  # noqa: E402
from typing import Any  # noqa: E402

import pytest  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import get_settings  # noqa: E402
from app.core.limiter import limiter  # noqa: E402
from app.infrastructure.persistence import database  # noqa: E402

get_settings.cache_clear()


@pytest.fixture
async def db_engine(tmp_path, monkeypatch: pytest.MonkeyPatch) -> AsyncIterator[Any]:
    """Fresh SQLite database with all tables, installed as the app's engine."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(database.Base.metadata.create_all)
    session_factory = async_sessionmaker(
        bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )
    monkeypatch.setattr(database, "engine", engine)
    monkeypatch.setattr(database, "AsyncSessionLocal", session_factory)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine: Any) -> AsyncIterator[AsyncSession]:
    """Session for repository tests. Rolls back after the test."""
    assert database.AsyncSessionLocal is not None
    async with database.AsyncSessionLocal() as session:
        yield session
        await session.rollback()


@pytest.fixture
def app(db_engine: Any, monkeypatch: pytest.MonkeyPatch) -> FastAPI:
    """A fresh application per test (clean app.state and overrides), rate limits off."""
    from app.main import create_app

    monkeypatch.setattr(limiter, "enabled", False)
    return create_app()


@pytest.fixture
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """Async HTTP client against the FastAPI app (ASGI)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

