"""Credential store: user rows, username uniqueness and profile columns."""

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from accounts_api.logger import get_logger
from accounts_api.models import User

logger = get_logger(__name__)

PROFILE_FIELDS = frozenset({"name", "timezone"})


class UserServiceError(Exception):
    """Base exception for credential store errors."""


class DuplicateUsernameError(UserServiceError):
    """Username is already taken."""


class UserNotFoundError(UserServiceError):
    """No user with the requested id or username."""


async def create_user(db: AsyncSession, username: str, password_hash: str, timezone: str = "") -> int:
    """Insert a user and return its id.

    Uniqueness is left to the database constraint, so two concurrent
    registrations of one username yield exactly one row.
    """
    user = User(username=username, password_hash=password_hash, timezone=timezone or "")
    db.add(user)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise DuplicateUsernameError(username) from exc
    await db.refresh(user)
    return user.id


async def get_user_by_username(db: AsyncSession, username: str) -> User:
    result = await db.execute(select(User).where(User.username == username))
    user = result.scalar_one_or_none()
    if user is None:
        raise UserNotFoundError(username)
    return user


async def get_user(db: AsyncSession, user_id: int) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise UserNotFoundError(str(user_id))
    return user


async def update_profile(db: AsyncSession, user_id: int, changes: dict[str, str]) -> None:
    """Apply a partial update; keys absent from `changes` are left as they are."""
    values = {field: value for field, value in changes.items() if field in PROFILE_FIELDS}
    if not values:
        await get_user(db, user_id)
        return
    result = await db.execute(update(User).where(User.id == user_id).values(**values))
    if result.rowcount == 0:
        await db.rollback()
        raise UserNotFoundError(str(user_id))
    await db.commit()


async def update_picture(db: AsyncSession, user_id: int, reference: str | None) -> None:
    result = await db.execute(update(User).where(User.id == user_id).values(profile_picture=reference))
    if result.rowcount == 0:
        await db.rollback()
        raise UserNotFoundError(str(user_id))
    await db.commit()
