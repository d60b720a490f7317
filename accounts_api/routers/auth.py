"""Authentication API router: registration, login and logout."""

from fastapi import APIRouter, Request, Response
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError

from accounts_api.auth import clear_session_cookie, get_session_token, set_session_cookie
from accounts_api.deps import DbSession, Sessions
from accounts_api.logger import get_logger
from accounts_api.schemas import LoginRequest, RegisterRequest, RegisterResponse, SuccessResponse
from accounts_api.security import InvalidDigestFormatError, dummy_verify, hash_password, verify_password
from accounts_api.services import users
from accounts_api.services.users import DuplicateUsernameError, UserNotFoundError
from accounts_api.utils import raise_bad_request, raise_internal_error, raise_unauthorized

router = APIRouter(tags=["auth"])
logger = get_logger(__name__)

# One message for unknown usernames and wrong passwords alike
INVALID_CREDENTIALS_MSG = "Invalid username or password"
USERNAME_TAKEN_MSG = "Username already exists"


@router.post("/api/registration", response_model=RegisterResponse)
async def register(data: RegisterRequest, db: DbSession) -> RegisterResponse:
    """Register a new user with username, password and timezone."""
    password_hash = await run_in_threadpool(hash_password, data.password)

    try:
        user_id = await users.create_user(db, data.username, password_hash, data.timezone)
    except DuplicateUsernameError as exc:
        logger.info("Registration rejected, username taken")
        raise_bad_request(USERNAME_TAKEN_MSG, cause=exc)
    except SQLAlchemyError as exc:
        logger.error("Registration failed", error=str(exc), error_type=type(exc).__name__)
        raise_internal_error("Registration failed", cause=exc)

    logger.info("User registered", user_id=user_id)
    return RegisterResponse(user_id=user_id)


async def _check_credentials(db: DbSession, username: str, password: str) -> int | None:
    """Return the user id for valid credentials, else None.

    Unknown usernames still pay for one bcrypt verification.
    """
    try:
        user = await users.get_user_by_username(db, username)
    except UserNotFoundError:
        await run_in_threadpool(dummy_verify, password)
        return None

    try:
        verified = await run_in_threadpool(verify_password, password, user.password_hash)
    except InvalidDigestFormatError:
        logger.error("Stored password digest is malformed", user_id=user.id)
        return None
    return user.id if verified else None


@router.post("/api/login", response_model=SuccessResponse)
async def login(
    request: Request,
    response: Response,
    data: LoginRequest,
    db: DbSession,
    sessions: Sessions,
) -> SuccessResponse:
    """Login with username and password; sets the session cookie."""
    user_id = await _check_credentials(db, data.username, data.password)
    if user_id is None:
        logger.warning("Failed login attempt")
        raise_unauthorized(INVALID_CREDENTIALS_MSG)

    # Never carry a pre-login session over into the authenticated one
    sessions.destroy(get_session_token(request))
    session_id = sessions.create(user_id)
    set_session_cookie(response, request, session_id)

    logger.info("Successful login", user_id=user_id)
    return SuccessResponse()


@router.post("/logout", response_model=SuccessResponse)
async def logout(request: Request, response: Response, sessions: Sessions) -> SuccessResponse:
    """Destroy the current session. Safe to call without one."""
    sessions.destroy(get_session_token(request))
    clear_session_cookie(response, request)
    logger.info("Logged out")
    return SuccessResponse()
