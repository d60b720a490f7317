"""Authentication helpers for request-scoped user context.

The session cookie is the only input the gate looks at. Whatever the
request body says about users is ignored; protected handlers act on the
user id resolved here and nothing else.
"""

from fastapi import Request, Response

from accounts_api.config import settings
from accounts_api.logger import get_logger
from accounts_api.sessions import SessionManager
from accounts_api.utils import raise_unauthorized

logger = get_logger(__name__)

NOT_AUTHENTICATED_MSG = "Not authenticated"


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.session_manager


def get_session_token(request: Request) -> str | None:
    return request.cookies.get(settings.session_cookie_name)


def is_secure_request(request: Request) -> bool:
    """True when the client reached us over TLS."""
    if settings.trust_proxy:
        forwarded = request.headers.get("X-Forwarded-Proto")
        if forwarded:
            return forwarded.split(",")[0].strip().lower() == "https"
    return request.url.scheme == "https"


def get_current_user_id(request: Request) -> int:
    """Resolve the current user id from the session cookie.

    A missing cookie and an unknown/expired one produce the same 401.
    """
    sessions = get_session_manager(request)
    user_id = sessions.validate(get_session_token(request))
    if user_id is None:
        raise_unauthorized(NOT_AUTHENTICATED_MSG)
    return user_id


def set_session_cookie(response: Response, request: Request, session_id: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=session_id,
        max_age=settings.session_max_age_seconds,
        path="/",
        httponly=True,
        secure=is_secure_request(request),
        samesite="lax",
    )


def clear_session_cookie(response: Response, request: Request) -> None:
    response.delete_cookie(
        key=settings.session_cookie_name,
        path="/",
        httponly=True,
        secure=is_secure_request(request),
        samesite="lax",
    )
