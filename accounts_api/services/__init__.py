"""Services package."""

from accounts_api.services.storage import ImageStorage, StorageError
from accounts_api.services.users import (
    DuplicateUsernameError,
    UserNotFoundError,
    UserServiceError,
)

__all__ = [
    "DuplicateUsernameError",
    "ImageStorage",
    "StorageError",
    "UserNotFoundError",
    "UserServiceError",
]
