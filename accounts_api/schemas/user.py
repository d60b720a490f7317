"""Pydantic schemas for the profile endpoints."""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from accounts_api.schemas.auth import SuccessResponse


class ProfileView(BaseModel):
    """Public view of a user; the password hash never leaves the store."""

    username: str
    name: str
    timezone: str
    profile_picture: str | None = Field(default=None, serialization_alias="profilePicture")

    model_config = ConfigDict(from_attributes=True)


class ProfileUpdate(BaseModel):
    """Partial profile update.

    Omitted (or null) fields are left unchanged; an empty string clears.
    """

    name: Annotated[str | None, Field(max_length=120)] = None
    timezone: Annotated[str | None, Field(max_length=64)] = None

    def changes(self) -> dict[str, str]:
        return {
            field: value
            for field, value in self.model_dump(exclude_unset=True).items()
            if value is not None
        }


class ProfileUpdateResponse(SuccessResponse):
    user: ProfileView


class PictureUploadResponse(SuccessResponse):
    profile_picture: str = Field(serialization_alias="profilePicture")
