"""Server-side sessions.

A session is an opaque, unguessable token bound to exactly one user id.
Handlers only see the `SessionManager` interface; the in-memory store is a
single-process implementation and can be swapped for a shared backend
without touching callers.
"""

import secrets
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock

from accounts_api.logger import get_logger

logger = get_logger(__name__)

# 32 random bytes -> 43 url-safe characters
SESSION_TOKEN_BYTES = 32
_MAX_TOKEN_LENGTH = 128


class SessionManager(ABC):
    """Issues, validates and destroys sessions."""

    @abstractmethod
    def create(self, user_id: int) -> str:
        """Issue a new session for `user_id` and return its id."""

    @abstractmethod
    def validate(self, session_id: str | None) -> int | None:
        """Return the bound user id, or None if the session is not active."""

    @abstractmethod
    def destroy(self, session_id: str | None) -> None:
        """End a session. Unknown or already-destroyed ids are ignored."""


@dataclass
class SessionRecord:
    user_id: int
    expires_at: float


class InMemorySessionStore(SessionManager):
    """Process-local session store with absolute expiry.

    Thread-safe; the lock only guards dict operations.
    """

    def __init__(self, max_age_seconds: int, clock: Callable[[], float] = time.monotonic) -> None:
        self.max_age_seconds = max_age_seconds
        self._clock = clock
        self._sessions: dict[str, SessionRecord] = {}
        self._lock = Lock()

    def create(self, user_id: int) -> str:
        session_id = secrets.token_urlsafe(SESSION_TOKEN_BYTES)
        record = SessionRecord(user_id=user_id, expires_at=self._clock() + self.max_age_seconds)
        with self._lock:
            self._purge_expired()
            self._sessions[session_id] = record
        logger.debug("Session created", user_id=user_id)
        return session_id

    def validate(self, session_id: str | None) -> int | None:
        if not _is_well_formed(session_id):
            return None
        with self._lock:
            record = self._sessions.get(session_id)
            if record is None:
                return None
            if record.expires_at <= self._clock():
                del self._sessions[session_id]
                logger.debug("Session expired", user_id=record.user_id)
                return None
            return record.user_id

    def destroy(self, session_id: str | None) -> None:
        if not _is_well_formed(session_id):
            return
        with self._lock:
            record = self._sessions.pop(session_id, None)
        if record is not None:
            logger.debug("Session destroyed", user_id=record.user_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _purge_expired(self) -> None:
        now = self._clock()
        expired = [sid for sid, record in self._sessions.items() if record.expires_at <= now]
        for sid in expired:
            del self._sessions[sid]


def _is_well_formed(session_id: str | None) -> bool:
    return isinstance(session_id, str) and 0 < len(session_id) <= _MAX_TOKEN_LENGTH
