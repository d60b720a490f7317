"""HTTP error helpers for routers.

Each helper raises an `HTTPException`; its detail becomes the `error` field
of the response body, and the domain exception that caused it is chained
for the logs.
"""

from typing import NoReturn

from fastapi import HTTPException, status


def _abort(status_code: int, detail: str, cause: Exception | None) -> NoReturn:
    raise HTTPException(status_code=status_code, detail=detail) from cause


def raise_bad_request(detail: str, *, cause: Exception | None = None) -> NoReturn:
    _abort(status.HTTP_400_BAD_REQUEST, detail, cause)


def raise_unauthorized(detail: str, *, cause: Exception | None = None) -> NoReturn:
    _abort(status.HTTP_401_UNAUTHORIZED, detail, cause)


def raise_internal_error(detail: str, *, cause: Exception | None = None) -> NoReturn:
    """Server-side failure; `detail` must never carry internal error text."""
    _abort(status.HTTP_500_INTERNAL_SERVER_ERROR, detail, cause)
