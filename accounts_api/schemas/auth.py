"""Pydantic schemas for registration, login and logout."""

from typing import Annotated

from pydantic import BaseModel, Field

USERNAME_PATTERN = r"^[A-Za-z0-9_]+$"


class RegisterRequest(BaseModel):
    """Schema for user registration."""

    username: Annotated[str, Field(min_length=3, max_length=20, pattern=USERNAME_PATTERN)]
    password: Annotated[str, Field(min_length=6, max_length=255)]
    timezone: Annotated[str, Field(max_length=64)] = ""


class LoginRequest(BaseModel):
    """Schema for user login.

    No format rules beyond non-empty: a username that could never have been
    registered fails the same way as a wrong password.
    """

    username: Annotated[str, Field(min_length=1, max_length=255)]
    password: Annotated[str, Field(min_length=1, max_length=1024)]


class SuccessResponse(BaseModel):
    success: bool = True


class RegisterResponse(SuccessResponse):
    user_id: int = Field(serialization_alias="userId")
