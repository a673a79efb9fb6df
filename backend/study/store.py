"""In-memory registry of active study sessions.

Sessions live only for the lifetime of the process and are never
re-synchronised with the database; each belongs to exactly one user.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime

from backend.config import settings, utcnow
from backend.errors import NotFoundError
from backend.study.session import StudySession

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    session: StudySession
    user_id: int
    last_used: datetime = field(default_factory=utcnow)


class SessionStore:
    """Keeps one StudySession per id, visible only to its owner."""

    def __init__(self, ttl_seconds: int | None = None) -> None:
        self._ttl = settings.session_ttl_seconds if ttl_seconds is None else ttl_seconds
        self._entries: dict[str, _Entry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def create(self, user_id: int, session: StudySession) -> str:
        """Register a session and return its id."""
        self.evict_expired()
        session_id = str(uuid.uuid4())
        self._entries[session_id] = _Entry(session=session, user_id=user_id)
        logger.info("Registered study session %s for user %d", session_id, user_id)
        return session_id

    def get(self, session_id: str, user_id: int) -> StudySession:
        entry = self._entries.get(session_id)
        if entry is None or entry.user_id != user_id:
            raise NotFoundError("Study session not found")
        entry.last_used = utcnow()
        return entry.session

    def end(self, session_id: str, user_id: int) -> StudySession:
        session = self.get(session_id, user_id)
        del self._entries[session_id]
        return session

    def evict_expired(self, now: datetime | None = None) -> int:
        """Drop sessions idle longer than the TTL. Returns how many were dropped."""
        now = now or utcnow()
        expired = [
            sid
            for sid, entry in self._entries.items()
            if (now - entry.last_used).total_seconds() > self._ttl
        ]
        for sid in expired:
            logger.info("Evicting expired study session %s", sid)
            self._entries.pop(sid, None)
        return len(expired)
