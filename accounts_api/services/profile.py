"""Profile service: profile reads/updates and profile-picture replacement."""

from dataclasses import dataclass

from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.ext.asyncio import AsyncSession

from accounts_api.logger import get_logger
from accounts_api.schemas import ProfileView
from accounts_api.services import users
from accounts_api.services.storage import ALLOWED_CONTENT_TYPES, ImageStorage, StorageError

logger = get_logger(__name__)


class InvalidUploadError(Exception):
    """Upload rejected before anything was written to storage."""


@dataclass(frozen=True)
class PictureUpload:
    filename: str | None
    content_type: str | None
    content: bytes


async def read_upload(file: UploadFile | None, max_bytes: int) -> PictureUpload:
    """Read at most `max_bytes + 1` bytes so oversized uploads are detected without buffering them."""
    if file is None or not file.filename:
        raise InvalidUploadError("No file uploaded")
    content = await file.read(max_bytes + 1)
    return PictureUpload(filename=file.filename, content_type=file.content_type, content=content)


def validate_picture(upload: PictureUpload, max_bytes: int) -> None:
    content_type = (upload.content_type or "").split(";", 1)[0].strip().lower()
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise InvalidUploadError("Invalid file type. Only images are allowed")
    if len(upload.content) > max_bytes:
        raise InvalidUploadError(f"File size must be less than {max_bytes // (1024 * 1024)}MB")
    if not upload.content:
        raise InvalidUploadError("Uploaded file is empty")


async def get_profile(db: AsyncSession, user_id: int) -> ProfileView:
    user = await users.get_user(db, user_id)
    return ProfileView.model_validate(user)


async def update_profile(db: AsyncSession, user_id: int, changes: dict[str, str]) -> ProfileView:
    await users.update_profile(db, user_id, changes)
    logger.info("Profile updated", user_id=user_id, fields=sorted(changes))
    return await get_profile(db, user_id)


async def replace_picture(
    db: AsyncSession,
    storage: ImageStorage,
    user_id: int,
    upload: PictureUpload,
    max_bytes: int,
) -> str:
    """Store a new picture, point the user at it, then drop the old blob.

    The old blob is only deleted once the new reference is committed, so a
    failure in between leaves at worst an orphaned file, never a reference
    to a missing one. Concurrent uploads for one user are last-write-wins.
    """
    validate_picture(upload, max_bytes)

    user = await users.get_user(db, user_id)
    previous = user.profile_picture

    reference = await run_in_threadpool(
        storage.save,
        upload.content,
        filename=upload.filename,
        content_type=upload.content_type,
    )

    try:
        await users.update_picture(db, user_id, reference)
    except Exception:
        try:
            await run_in_threadpool(storage.delete, reference)
        except StorageError as store_exc:
            logger.error(
                "Failed to clean up picture after DB error",
                user_id=user_id,
                reference=reference,
                error=str(store_exc),
            )
        raise

    if previous and previous != reference:
        try:
            await run_in_threadpool(storage.delete, previous)
        except StorageError as exc:
            logger.warning(
                "Old picture left orphaned",
                user_id=user_id,
                reference=previous,
                error=str(exc),
            )

    logger.info("Profile picture replaced", user_id=user_id, reference=reference)
    return reference
