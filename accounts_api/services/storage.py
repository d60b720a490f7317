"""Storage service for profile pictures.

Pictures live as flat files under one directory and are addressed by a
public reference of the form `<url_prefix>/<key>`. Methods are blocking;
callers run them through `run_in_threadpool`.
"""

from __future__ import annotations

import mimetypes
import secrets
import time
from pathlib import Path, PurePosixPath

from accounts_api.logger import get_logger

logger = get_logger(__name__)

ALLOWED_CONTENT_TYPES = frozenset(
    {"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"}
)
ALLOWED_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".webp"})
_EXTENSION_BY_TYPE = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}
_MAX_KEY_ATTEMPTS = 5


class StorageError(Exception):
    """Raised when storage operations fail."""


class ImageStorage:
    """Filesystem-backed picture store."""

    def __init__(self, root: str | Path, url_prefix: str = "/images") -> None:
        self.root = Path(root)
        self.url_prefix = "/" + url_prefix.strip("/")

    def ensure_root(self) -> None:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"Cannot create storage directory {self.root}") from exc

    @staticmethod
    def generate_key(filename: str | None, content_type: str | None) -> str:
        """Build a fresh key: `<epoch-ms>-<9 random digits><ext>`."""
        suffix = PurePosixPath(filename or "").suffix.lower()
        if suffix not in ALLOWED_EXTENSIONS:
            suffix = _EXTENSION_BY_TYPE.get(content_type or "") or mimetypes.guess_extension(
                content_type or ""
            ) or ""
        return f"{int(time.time() * 1000)}-{secrets.randbelow(10**9):09d}{suffix}"

    def save(self, content: bytes, *, filename: str | None, content_type: str | None) -> str:
        """Write a new blob and return its public reference."""
        self.ensure_root()
        for _ in range(_MAX_KEY_ATTEMPTS):
            key = self.generate_key(filename, content_type)
            path = self.root / key
            try:
                # Exclusive create: an existing blob is never overwritten
                with path.open("xb") as handle:
                    handle.write(content)
            except FileExistsError:
                continue
            except OSError as exc:
                logger.error("Failed to write picture", key=key, error=str(exc))
                raise StorageError(f"Failed to store {key}") from exc
            return f"{self.url_prefix}/{key}"
        raise StorageError("Could not allocate a unique picture key")

    def path_for(self, reference: str | None) -> Path | None:
        """Resolve a reference to a path inside the root, or None if it is foreign."""
        if not reference or not reference.startswith(self.url_prefix + "/"):
            return None
        key = reference[len(self.url_prefix) + 1 :]
        if not key or "/" in key or "\\" in key or key in (".", ".."):
            return None
        return self.root / key

    def exists(self, reference: str | None) -> bool:
        path = self.path_for(reference)
        return path is not None and path.is_file()

    def delete(self, reference: str | None) -> bool:
        """Delete a blob by reference. Returns False when there was nothing to delete."""
        path = self.path_for(reference)
        if path is None:
            return False
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            logger.error("Failed to delete picture", reference=reference, error=str(exc))
            raise StorageError(f"Failed to delete {reference}") from exc
        return True
