"""Profile API router.

Every endpoint here sits behind the session gate and acts only on the
user id bound to the caller's session.
"""

from typing import Annotated, NoReturn

from fastapi import APIRouter, File, Request, UploadFile
from sqlalchemy.exc import SQLAlchemyError

from accounts_api.auth import NOT_AUTHENTICATED_MSG, get_session_manager, get_session_token
from accounts_api.config import settings
from accounts_api.deps import CurrentUserId, DbSession, Storage
from accounts_api.logger import get_logger
from accounts_api.schemas import (
    PictureUploadResponse,
    ProfileUpdate,
    ProfileUpdateResponse,
    ProfileView,
)
from accounts_api.services import profile
from accounts_api.services.profile import InvalidUploadError
from accounts_api.services.storage import StorageError
from accounts_api.services.users import UserNotFoundError
from accounts_api.utils import raise_bad_request, raise_internal_error, raise_unauthorized

router = APIRouter(prefix="/api/user", tags=["user"])
logger = get_logger(__name__)


def _reject_orphaned_session(request: Request, exc: UserNotFoundError) -> NoReturn:
    # The session outlived its user row; end it and answer like any other bad session
    get_session_manager(request).destroy(get_session_token(request))
    raise_unauthorized(NOT_AUTHENTICATED_MSG, cause=exc)


@router.get("", response_model=ProfileView)
async def get_user(request: Request, db: DbSession, user_id: CurrentUserId) -> ProfileView:
    """Get the profile of the signed-in user."""
    try:
        return await profile.get_profile(db, user_id)
    except UserNotFoundError as exc:
        _reject_orphaned_session(request, exc)


@router.post("/update", response_model=ProfileUpdateResponse)
async def update_user(
    request: Request,
    data: ProfileUpdate,
    db: DbSession,
    user_id: CurrentUserId,
) -> ProfileUpdateResponse:
    """Update name and/or timezone; omitted fields keep their values."""
    try:
        view = await profile.update_profile(db, user_id, data.changes())
    except UserNotFoundError as exc:
        _reject_orphaned_session(request, exc)
    except SQLAlchemyError as exc:
        logger.error("Profile update failed", user_id=user_id, error=str(exc))
        raise_internal_error("Update failed", cause=exc)
    return ProfileUpdateResponse(user=view)


@router.post("/upload-picture", response_model=PictureUploadResponse)
async def upload_picture(
    request: Request,
    db: DbSession,
    storage: Storage,
    user_id: CurrentUserId,
    picture: Annotated[UploadFile | None, File(alias="profilePicture")] = None,
) -> PictureUploadResponse:
    """Replace the profile picture with an uploaded image."""
    try:
        upload = await profile.read_upload(picture, settings.max_upload_bytes)
        reference = await profile.replace_picture(db, storage, user_id, upload, settings.max_upload_bytes)
    except InvalidUploadError as exc:
        logger.info("Picture upload rejected", user_id=user_id, reason=str(exc))
        raise_bad_request(str(exc), cause=exc)
    except UserNotFoundError as exc:
        _reject_orphaned_session(request, exc)
    except (StorageError, SQLAlchemyError) as exc:
        logger.error("Picture upload failed", user_id=user_id, error=str(exc))
        raise_internal_error("Upload failed", cause=exc)
    finally:
        if picture is not None:
            await picture.close()
    return PictureUploadResponse(profile_picture=reference)
