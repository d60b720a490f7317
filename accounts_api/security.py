"""Password hashing.

bcrypt digests embed their own random salt and work factor, so `verify`
needs nothing but the plaintext and the stored digest. bcrypt only reads
the first 72 bytes of its input, so every password is first reduced to a
base64 SHA-256 digest; the whole password takes part whatever its length.
"""

import base64
import hashlib

import bcrypt

from accounts_api.config import settings
from accounts_api.logger import get_logger

logger = get_logger(__name__)


class InvalidDigestFormatError(ValueError):
    """Raised when a stored digest is not a bcrypt hash."""


def _prehash(plaintext: str) -> bytes:
    # 44 ASCII bytes, no NULs, well inside bcrypt's input limit
    return base64.b64encode(hashlib.sha256(plaintext.encode("utf-8")).digest())


def hash_password(plaintext: str, rounds: int | None = None) -> str:
    """Hash a password using bcrypt with a fresh salt."""
    salt = bcrypt.gensalt(rounds=rounds or settings.bcrypt_rounds)
    return bcrypt.hashpw(_prehash(plaintext), salt).decode("utf-8")


def verify_password(plaintext: str, digest: str) -> bool:
    """Verify a password against its hash.

    Returns False for a wrong password; raises InvalidDigestFormatError only
    when `digest` itself is malformed.
    """
    try:
        digest_bytes = digest.encode("ascii")
    except (AttributeError, UnicodeEncodeError) as exc:
        raise InvalidDigestFormatError("Digest is not an ASCII string") from exc

    try:
        return bcrypt.checkpw(_prehash(plaintext), digest_bytes)
    except ValueError as exc:
        logger.warning("Malformed password digest", error=str(exc))
        raise InvalidDigestFormatError("Digest is not a valid bcrypt hash") from exc


# Verified against when the username is unknown, so both login failure paths
# cost exactly one verification from the first request on.
_DUMMY_DIGEST = hash_password("unused-dummy-password")


def dummy_verify(plaintext: str) -> bool:
    """Burn one verification's worth of work and return False."""
    verify_password(plaintext, _DUMMY_DIGEST)
    return False
