"""Accounts API - FastAPI Application."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from accounts_api.config import settings
from accounts_api.database import init_db
from accounts_api.deps import DbSession
from accounts_api.logger import configure_logging, get_logger
from accounts_api.middleware import logging_middleware, origin_check_middleware
from accounts_api.routers import auth, users
from accounts_api.services.storage import ImageStorage
from accounts_api.sessions import InMemorySessionStore

# Initialize logging early
configure_logging()
logger = get_logger(__name__)

GENERIC_ERROR_MSG = "Internal server error"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan - init DB and picture directory on startup."""
    await init_db()
    app.state.image_storage.ensure_root()
    logger.info("Application started", version="0.1.0")
    yield
    logger.info("Application shutting down")


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query"))
    if not field:
        return "Invalid request body"
    return f"{field}: {first.get('msg', 'invalid value')}"


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Missing or malformed input is a plain 400, not FastAPI's 422."""
    return JSONResponse(status_code=400, content={"error": _validation_message(exc)})


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all: log everything, tell the client nothing."""
    logger.error("Unhandled exception", error_type=type(exc).__name__, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={
            "error": GENERIC_ERROR_MSG,
            "request_id": structlog.contextvars.get_contextvars().get("request_id"),
        },
    )


def create_app() -> FastAPI:
    """Build the application with its own session store and picture storage."""
    app = FastAPI(
        title="Accounts API",
        description="User registration, session sign-in and profile storage",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.session_manager = InMemorySessionStore(max_age_seconds=settings.session_max_age_seconds)
    app.state.image_storage = ImageStorage(settings.upload_dir, url_prefix=settings.image_url_prefix)

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    # Last registered runs first: logging wraps CORS wraps the origin check
    app.middleware("http")(origin_check_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "X-Request-ID"],
    )
    app.middleware("http")(logging_middleware)

    app.include_router(auth.router)
    app.include_router(users.router)

    app.mount(
        settings.image_url_prefix,
        StaticFiles(directory=settings.upload_dir, check_dir=False),
        name="images",
    )

    @app.get("/health")
    async def health_check(db: DbSession) -> JSONResponse:
        """Report liveness plus database reachability."""
        try:
            await db.execute(text("SELECT 1"))
            database_ok = True
        except Exception as exc:
            logger.error("Health check: database unreachable", error=str(exc))
            database_ok = False

        return JSONResponse(
            status_code=200 if database_ok else 503,
            content={
                "status": "healthy" if database_ok else "unhealthy",
                "timestamp": datetime.now(UTC).isoformat(),
                "checks": {"database": database_ok},
            },
        )

    return app


app = create_app()
