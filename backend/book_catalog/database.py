"""
Book Catalogue Backend — Database Session Management
=====================================================

What:  Async SQLAlchemy engine, session factory, declarative base and the
       FastAPI session dependency.
How:   One process-wide engine owns the connection pool. Each request gets its
       own session that commits on success and rolls back on error.
Who:   Route handlers (via Depends), the seed script and Alembic.
"""

import secrets
import time
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Dict

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from book_catalog.config import settings


def _engine_options(database_url: str) -> Dict[str, Any]:
    """Pool options for server databases; SQLite picks its own pool class."""
    options: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if make_url(database_url).get_backend_name() != "sqlite":
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return options


# ── Engine & Session Factory ──────────────────────────────────────────────
engine = create_async_engine(settings.database_url, **_engine_options(settings.database_url))

# expire_on_commit=False: ORM objects stay readable after the request commits
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all ORM models; its metadata drives Alembic."""
    pass


# ── Identifiers & Timestamps ──────────────────────────────────────────────
def generate_object_id() -> str:
    """
    Return a 24-character lowercase hex identifier.

    Layout: 8 hex digits of the current epoch seconds followed by 16 random
    hex digits, the same shape as a MongoDB ObjectId.
    """
    return f"{int(time.time()) & 0xFFFFFFFF:08x}{secrets.token_hex(8)}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    Commits when the handler returns normally, rolls back on any exception,
    and always closes the session so the connection returns to the pool.

    Write services commit their own work before returning `Ok`, because this
    cleanup runs only after the response has been sent. The commit here is
    then a no-op on an empty transaction; it is not relied on to persist a
    write the client has already been told succeeded.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def dispose_engine() -> None:
    """Close every pooled connection; called on application shutdown."""
    await engine.dispose()
