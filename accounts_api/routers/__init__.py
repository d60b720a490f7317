"""API routers package."""

from accounts_api.routers import auth, users

__all__ = [
    "auth",
    "users",
]
