"""Test fixtures and configuration."""

import logging
import os
import sys

# Must be set before accounts_api.config builds its Settings instance
os.environ["ENVIRONMENT"] = "testing"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.pop("CORS_ORIGINS", None)

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
import structlog  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from accounts_api.config import settings  # noqa: E402

TEST_ORIGIN = "http://test"
DEFAULT_PASSWORD = "secret1"


# --- Structlog Configuration for Tests ---
@pytest.fixture(autouse=True, scope="session")
def configure_structlog_for_tests():
    """Readable, uncached structlog output that capsys and caplog can capture."""
    from accounts_api.logger import shared_processors

    processors = shared_processors()
    structlog.configure(
        processors=[*processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.dev.ConsoleRenderer(colors=False),
            foreign_pre_chain=processors,
        )
    )
    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(logging.DEBUG)

    yield

    structlog.reset_defaults()



@pytest_asyncio.fixture(scope="function")
async def db_engine(tmp_path):
    """Fresh SQLite database per test with the full schema created.

    A file-backed database (not :memory:) so every connection the app and the
    test open sees the same tables.
    """
    from accounts_api import models  # noqa: F401
    from accounts_api.database import Base

    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'accounts-test.db'}",
        echo=False,
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function", autouse=True)
async def patch_database_connection(db_engine):
    """Override global database session maker to use test engine."""
    from accounts_api import database

    test_maker = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    previous = database.set_test_session_maker(test_maker)
    yield test_maker
    database.set_test_session_maker(previous)


@pytest_asyncio.fixture(scope="function")
async def db(patch_database_connection):
    """Session on the test database, separate from the ones request handlers get."""
    async with patch_database_connection() as session:
        yield session


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    """Point picture storage at a per-test directory."""
    path = tmp_path / "images"
    monkeypatch.setattr(settings, "upload_dir", str(path))
    return path


@pytest.fixture
def app(patch_database_connection, upload_dir):
    """A fresh application: its own session store and picture directory.

    ASGITransport does not run the lifespan hook, so the storage directory is
    created here; the schema already exists via db_engine.
    """
    from accounts_api.main import create_app

    application = create_app()
    application.state.image_storage.ensure_root()
    return application


def make_client(app, **kwargs) -> AsyncClient:
    kwargs.setdefault("base_url", TEST_ORIGIN)
    kwargs.setdefault("headers", {"Origin": TEST_ORIGIN})
    return AsyncClient(transport=ASGITransport(app=app), **kwargs)


@pytest_asyncio.fixture
async def public_client(app):
    """Unauthenticated client that passes the origin check."""
    async with make_client(app) as client:
        yield client


@pytest_asyncio.fixture
async def other_client(app):
    """A second browser, with its own cookie jar."""
    async with make_client(app) as client:
        yield client


@pytest.fixture
def register_user():
    """Register through the API; returns the new user id."""

    async def _register(client, username: str, password: str = DEFAULT_PASSWORD, timezone: str = "") -> int:
        response = await client.post(
            "/api/registration",
            json={"username": username, "password": password, "timezone": timezone},
        )
        assert response.status_code == 200, response.text
        return response.json()["userId"]

    return _register


@pytest.fixture
def login_user():
    """Log in through the API; the client keeps the session cookie."""

    async def _login(client, username: str, password: str = DEFAULT_PASSWORD) -> str:
        response = await client.post("/api/login", json={"username": username, "password": password})
        assert response.status_code == 200, response.text
        return client.cookies[settings.session_cookie_name]

    return _login


@pytest_asyncio.fixture
async def auth_client(public_client, register_user, login_user):
    """Client signed in as `alice`."""
    await register_user(public_client, "alice", timezone="Europe/London")
    await login_user(public_client, "alice")
    return public_client
