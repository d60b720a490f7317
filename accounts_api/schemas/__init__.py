"""Pydantic schemas package."""

from accounts_api.schemas.auth import (
    LoginRequest,
    RegisterRequest,
    RegisterResponse,
    SuccessResponse,
)
from accounts_api.schemas.user import (
    PictureUploadResponse,
    ProfileUpdate,
    ProfileUpdateResponse,
    ProfileView,
)

__all__ = [
    "LoginRequest",
    "PictureUploadResponse",
    "ProfileUpdate",
    "ProfileUpdateResponse",
    "ProfileView",
    "RegisterRequest",
    "RegisterResponse",
    "SuccessResponse",
]
