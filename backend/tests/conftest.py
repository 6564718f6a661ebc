"""Pytest configuration and fixtures for quote wizard tests.

Tests run against a throwaway SQLite file per test (aiosqlite), so no
Postgres or Redis is needed. SQLite transactions are opened with
BEGIN IMMEDIATE: concurrent writers queue on the database lock instead of
failing with upgrade deadlocks.
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.config import settings
from app.database import Base, get_db
from app.main import app
from app.middleware.session import new_session_key
from app.models import *  # noqa: F401,F403


# ── Settings ─────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def _test_settings(monkeypatch, tmp_path):
    """No Redis, no scheduler, no reCAPTCHA secret, uploads under tmp."""
    monkeypatch.setattr(settings, "rate_limit_enabled", False)
    monkeypatch.setattr(settings, "scheduler_enabled", False)
    monkeypatch.setattr(settings, "recaptcha_secret_key", "")
    monkeypatch.setattr(settings, "upload_dir", str(tmp_path / "uploads"))
    monkeypatch.setattr(settings, "public_base_url", "https://shop.example.com")


# ── Test Database Setup ──────────────────────────────────────────

@pytest_asyncio.fixture
async def test_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'quotes.db'}")

    @event.listens_for(engine.sync_engine, "connect")
    def _no_implicit_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """A single session for store-level tests. Do not hold it open across HTTP calls."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def session_key() -> str:
    return new_session_key()


# ── HTTP clients ─────────────────────────────────────────────────

@pytest_asyncio.fixture
async def make_client(session_factory):
    """Factory for ASGI clients; each client is its own browser (cookie jar)."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    clients: list[AsyncClient] = []

    def _make(**kwargs) -> AsyncClient:
        c = AsyncClient(transport=ASGITransport(app=app), base_url="http://test", **kwargs)
        clients.append(c)
        return c

    yield _make

    for c in clients:
        await c.aclose()
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(make_client) -> AsyncClient:
    c = make_client()
    # First request issues the anonymous session cookie.
    await c.get("/health")
    return c


# ── Data helpers ─────────────────────────────────────────────────

@pytest.fixture
def complete_fields() -> dict:
    return {
        "project_type": "figurine",
        "name": "Ada Lovelace",
        "email": "ada@example.com",
        "phone": "555-0100",
        "material": "pla",
        "size": "medium",
        "color": "blue",
        "timeline": "standard",
        "description": "A small dragon",
        "finishing": True,
        "painting": False,
        "rush": False,
        "need_design": False,
    }


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "api: HTTP API tests")
    config.addinivalue_line("markers", "integration: Integration tests")
