"""
Books API — Test Configuration (conftest.py)
=============================================

What:  Shared pytest fixtures for the entire test suite.
How:   The environment is pointed at a throw-away SQLite file and a fixed
       bearer token table BEFORE any books_api module is imported.

Fixture Hierarchy:
    db_engine     creates the tables on the application engine, drops them after
    db_session    AsyncSession on that engine (store-level tests)
    client        HTTPX AsyncClient bound to a freshly created app
    auth_headers  role name → Authorization header
    mock_db_session / mock_store / mock_authorizer for controller unit tests

Test principals (token → user id, role):
    administrator-token  1  administrator
    editor-token         2  editor
    author-token         3  author
    author2-token        4  author
    contributor-token    5  contributor
    subscriber-token     6  subscriber
"""

import json
import os
import tempfile
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport


# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

_DB_DIR = tempfile.mkdtemp(prefix="books_api_test_")

TOKENS = {
    "administrator-token": {"user_id": 1, "roles": ["administrator"]},
    "editor-token": {"user_id": 2, "roles": ["editor"]},
    "author-token": {"user_id": 3, "roles": ["author"]},
    "author2-token": {"user_id": 4, "roles": ["author"]},
    "contributor-token": {"user_id": 5, "roles": ["contributor"]},
    "subscriber-token": {"user_id": 6, "roles": ["subscriber"]},
}

os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR}/books_test.db"
os.environ["SITE_URL"] = "http://example.test"
os.environ["API_TOKENS"] = json.dumps(TOKENS)
os.environ["LOG_LEVEL"] = "WARNING"

from books_api.database import Base, async_session_factory, engine  # noqa: E402
from books_api.models.document import Document  # noqa: E402
from books_api.services.registry import BOOK_TYPE  # noqa: E402


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    """Empty schema for each test."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    # Pooled connections are bound to this test's event loop
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    async with async_session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(db_engine):
    """
    HTTPX AsyncClient talking to a fresh app instance.

    Usage:
        async def test_list(client):
            response = await client.get("/hussainas/v1/books")
            assert response.status_code == 200
    """
    from books_api.main import create_app

    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client


@pytest.fixture
def auth_headers():
    """auth_headers("editor") → {"Authorization": "Bearer editor-token"}"""
    def _headers(role: str) -> dict:
        return {"Authorization": f"Bearer {role}-token"}
    return _headers


# ══════════════════════════════════════════════════════════════════════════
# Mock Fixtures (controller unit tests)
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def mock_store():
    store = MagicMock()
    store.find = AsyncMock(return_value=None)
    store.query = AsyncMock(return_value=([], 0))
    store.insert = AsyncMock(return_value=1)
    store.update = AsyncMock(return_value=1)
    store.delete = AsyncMock(return_value=True)
    return store


@pytest.fixture
def mock_authorizer():
    authorizer = MagicMock()
    authorizer.can_publish.return_value = True
    authorizer.can_edit.return_value = True
    authorizer.can_delete.return_value = True
    authorizer.can_read_private.return_value = False
    return authorizer


@pytest.fixture
def make_document():
    """
    Builds detached Document instances.

    make_document(id=7, title="Dune", status="draft")
    """
    def _make(**overrides) -> Document:
        values = {
            "id": 1,
            "entity_type": BOOK_TYPE,
            "title": "Dune",
            "content": "Spice",
            "status": "publish",
            "trashed_from_status": None,
            "author_id": 3,
            "slug": "dune",
            "created_at": datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc),
            "modified_at": datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc),
        }
        values.update(overrides)
        return Document(**values)
    return _make
