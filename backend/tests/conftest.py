"""
Book Catalogue Backend — Test Configuration (conftest.py)
==========================================================

What:  Shared pytest fixtures for the whole suite.
How:   Every test gets a fresh in-memory SQLite database (aiosqlite,
       StaticPool so all sessions share one connection) with the tables
       created from the ORM metadata. HTTP tests talk to the real app through
       httpx's ASGITransport, with the session dependency pointed at that
       database.

Fixture Hierarchy (all function-scoped):
    engine
    └── session_factory
        ├── db_session: a session for calling services directly
        └── test_client: AsyncClient against the app
            └── auth_headers: bearer header for a freshly registered account
"""

import os

# Settings are read at import time, so the environment is set before any
# book_catalog import
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-secret-with-enough-length-for-hs256-signing"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_REQUESTS"] = "10000"

from datetime import datetime, timedelta, timezone  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from book_catalog.database import Base, get_db_session  # noqa: E402
from book_catalog.models.book import Book  # noqa: E402
from book_catalog.models.user import User  # noqa: E402,F401


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def engine():
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_book(db_session):
    """
    Insert a book row directly, bypassing the service.

    Used where a test needs control over `created_at` (ordering, stats).
    """

    async def _make(
        title="Ficciones",
        author="Jorge Luis Borges",
        publication_year=1944,
        state="AVAILABLE",
        created_at=None,
    ) -> Book:
        book = Book(
            title=title,
            author=author,
            publication_year=publication_year,
            state=state,
            created_at=created_at or datetime.now(timezone.utc),
        )
        db_session.add(book)
        await db_session.flush()
        return book

    return _make


@pytest.fixture
def minutes_ago():
    now = datetime.now(timezone.utc)
    return lambda minutes: now - timedelta(minutes=minutes)


# ══════════════════════════════════════════════════════════════════════════
# HTTP
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def session_override(session_factory):
    """Stand-in for `get_db_session` bound to the per-test database."""

    async def override_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    return override_session


@pytest.fixture
def app_client(session_override):
    """
    Build an AsyncClient around the app (or an ASGI wrapper of it).

    Usage:
        async with app_client(raise_app_exceptions=False) as client:
            ...

    `session` replaces the default session override; `wrap` receives the app
    and returns the ASGI callable the transport should drive.
    """
    from book_catalog.main import app

    def _build(session=None, wrap=None, **transport_kwargs) -> AsyncClient:
        app.dependency_overrides[get_db_session] = session or session_override
        target = wrap(app) if wrap is not None else app
        transport = ASGITransport(app=target, **transport_kwargs)
        return AsyncClient(transport=transport, base_url="http://test")

    yield _build
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def test_client(app_client):
    """
    AsyncClient wired to the FastAPI app, using the per-test database.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
    """
    async with app_client() as client:
        yield client


@pytest.fixture
def sample_account():
    return {"username": "lector", "email": "Lector@Example.com", "password": "s3cret-pass"}


@pytest.fixture
def sample_book():
    return {"title": "Ficciones", "author": "Jorge Luis Borges", "publicationYear": 1944}


@pytest_asyncio.fixture
async def auth_headers(test_client, sample_account):
    response = await test_client.post("/api/auth/register", json=sample_account)
    assert response.status_code == 201, response.text
    token = response.json()["data"]["token"]
    return {"Authorization": f"Bearer {token}"}
