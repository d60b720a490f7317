"""Async engine, per-request sessions and schema bootstrap.

SQLite (via aiosqlite) is the default store; any SQLAlchemy async URL
works, with connection-pool sizing applied only to server databases.
"""

from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from accounts_api.config import settings
from accounts_api.logger import get_logger

logger = get_logger(__name__)

SessionMaker = async_sessionmaker[AsyncSession]


class Base(DeclarativeBase):
    """Declarative base for the accounts tables."""


def _is_sqlite(url: str) -> bool:
    return make_url(url).get_backend_name() == "sqlite"


def _engine_options(url: str) -> dict[str, Any]:
    # SQLite picks its own pool class
    if _is_sqlite(url):
        return {}
    return {"pool_pre_ping": True, "pool_size": 10, "max_overflow": 20, "pool_recycle": 3600}


def create_engine_from_url(url: str) -> AsyncEngine:
    """Create an async engine with backend-appropriate pool options."""
    return create_async_engine(url, echo=settings.debug, **_engine_options(url))


engine = create_engine_from_url(settings.database_url)
async_session_maker: SessionMaker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

# Tests point request handlers at a throwaway database through this
_session_maker_override: SessionMaker | None = None


def set_test_session_maker(maker: SessionMaker | None) -> SessionMaker | None:
    """Install (or clear, with None) the session maker used by `get_db`; returns the previous one."""
    global _session_maker_override
    previous, _session_maker_override = _session_maker_override, maker
    return previous


def get_test_session_maker() -> SessionMaker | None:
    return _session_maker_override


async def get_db() -> AsyncIterator[AsyncSession]:
    """One session per request, closed when the response is done."""
    async with (_session_maker_override or async_session_maker)() as session:
        yield session


def _ensure_sqlite_directory(url: str) -> None:
    if not _is_sqlite(url):
        return
    path = make_url(url).database
    if path and path != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)


async def init_db(db_engine: AsyncEngine | None = None) -> None:
    """Create missing tables at startup when `auto_create_schema` is on.

    Deployments that manage the schema with Alembic switch the flag off and
    run `alembic upgrade head` before starting the app.
    """
    if not settings.auto_create_schema:
        logger.info("Schema creation skipped, managed by migrations")
        return

    # Registers the model tables on Base.metadata
    from accounts_api import models  # noqa: F401

    target = db_engine or engine
    _ensure_sqlite_directory(target.url.render_as_string(hide_password=False))
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ready", tables=sorted(Base.metadata.tables))
