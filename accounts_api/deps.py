"""Common FastAPI dependencies for consistent type annotations.

Usage:
    from accounts_api.deps import CurrentUserId, DbSession

    async def my_endpoint(db: DbSession, user_id: CurrentUserId):
        ...
"""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from accounts_api.auth import get_current_user_id, get_session_manager
from accounts_api.database import get_db
from accounts_api.services.storage import ImageStorage
from accounts_api.sessions import SessionManager


def get_image_storage(request: Request) -> ImageStorage:
    return request.app.state.image_storage


DbSession = Annotated[AsyncSession, Depends(get_db)]
CurrentUserId = Annotated[int, Depends(get_current_user_id)]
Sessions = Annotated[SessionManager, Depends(get_session_manager)]
Storage = Annotated[ImageStorage, Depends(get_image_storage)]

__all__ = ["CurrentUserId", "DbSession", "Sessions", "Storage"]
