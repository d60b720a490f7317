"""HTTP middleware: request logging and the cross-site origin check."""

import time
from typing import Any
from urllib.parse import urlsplit
from uuid import uuid4

import structlog
from fastapi import Request, Response
from fastapi.responses import JSONResponse

from accounts_api.auth import is_secure_request
from accounts_api.config import settings
from accounts_api.logger import get_logger

logger = get_logger(__name__)

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS", "TRACE"})
_DEFAULT_PORTS = {"http": 80, "https": 443}


async def logging_middleware(request: Request, call_next: Any) -> Response:
    """Inject Request-ID and log request details."""
    request_id = request.headers.get("X-Request-ID", str(uuid4()))

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        request_id=request_id,
        method=request.method,
        path=request.url.path,
    )

    start_time = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception as exc:
        logger.exception(
            "HTTP Request Failed",
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            error=str(exc),
        )
        raise

    logger.info(
        "HTTP Request",
        status_code=response.status_code,
        duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
    )
    response.headers["X-Request-ID"] = request_id
    return response


def normalize_origin(value: str | None) -> str | None:
    """Reduce a URL or origin to `scheme://host[:port]`, dropping default ports."""
    if not value or value == "null":
        return None
    try:
        parts = urlsplit(value.strip())
        port = parts.port
    except ValueError:
        return None
    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    if not scheme or not host:
        return None
    if port is None or port == _DEFAULT_PORTS.get(scheme):
        return f"{scheme}://{host}"
    return f"{scheme}://{host}:{port}"


def serving_origin(request: Request) -> str | None:
    host = request.headers.get("host")
    if not host:
        return None
    scheme = "https" if is_secure_request(request) else request.url.scheme
    return normalize_origin(f"{scheme}://{host}")


def declared_origin(request: Request) -> str | None:
    origin = request.headers.get("origin")
    if origin is not None:
        return normalize_origin(origin)
    return normalize_origin(request.headers.get("referer"))


def is_trusted_origin(request: Request) -> bool:
    origin = declared_origin(request)
    if origin is None:
        return False
    trusted = {normalize_origin(o) for o in settings.cors_origins}
    trusted.add(serving_origin(request))
    trusted.discard(None)
    return origin in trusted


async def origin_check_middleware(request: Request, call_next: Any) -> Response:
    """Reject state-changing requests whose Origin/Referer is not ours."""
    if request.method in SAFE_METHODS or is_trusted_origin(request):
        return await call_next(request)

    logger.warning(
        "Cross-origin request rejected",
        origin=request.headers.get("origin"),
        referer=request.headers.get("referer"),
    )
    return JSONResponse(status_code=403, content={"error": "Forbidden"})
