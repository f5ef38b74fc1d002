"""Persistent login sessions.

Sessions never expire: every record in the table stays valid until an
explicit logout. The whole table is written through to ``sessions.json`` on
every mutation so it survives restarts.
"""

from __future__ import annotations

import logging
import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from zeabur_monitor.errors import PersistenceError
from zeabur_monitor.storage import JsonDocument

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _short(session_id: str) -> str:
    return session_id[:8] + "..."


@dataclass
class Session:
    """A server-held proof of a successful login."""

    id: str
    password: str
    created_at: datetime
    last_accessed_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "password": self.password,
            "createdAt": self.created_at.isoformat(),
            "lastAccessedAt": self.last_accessed_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, session_id: str, data: dict[str, Any]) -> "Session":
        created = _parse_timestamp(data.get("createdAt"))
        accessed = _parse_timestamp(data.get("lastAccessedAt"), fallback=created)
        return cls(
            id=session_id,
            password=str(data.get("password", "")),
            created_at=created,
            last_accessed_at=accessed,
        )


def _parse_timestamp(value: Any, fallback: datetime | None = None) -> datetime:
    if isinstance(value, str) and value:
        # Files written by older builds use a trailing "Z"
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return fallback or _now()


class SessionStore:
    """Create, resolve and destroy sessions with write-through persistence."""

    def __init__(self, document: JsonDocument) -> None:
        self._document = document
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions

    def load(self) -> int:
        """Merge persisted sessions into memory. Returns the number added.

        Existing in-memory records win over the file.
        """
        raw = self._document.load(default={})
        if not isinstance(raw, dict):
            logger.error("Ignoring malformed session table in %s", self._document.path)
            return 0

        added = 0
        with self._lock:
            for session_id, data in raw.items():
                if session_id in self._sessions or not isinstance(data, dict):
                    continue
                try:
                    self._sessions[session_id] = Session.from_dict(session_id, data)
                except ValueError:
                    logger.warning("Skipping session %s with bad timestamps", _short(session_id))
                    continue
                added += 1
        logger.info("Loaded %d persisted sessions", added)
        return added

    def create(self, password: str) -> str:
        """Start a new session and return its id.

        Raises :class:`PersistenceError` if the table cannot be saved; the
        session is discarded in that case.
        """
        session_id = secrets.token_hex(24)
        now = _now()
        with self._lock:
            self._sessions[session_id] = Session(
                id=session_id,
                password=password,
                created_at=now,
                last_accessed_at=now,
            )
            try:
                self._persist()
            except PersistenceError:
                self._sessions.pop(session_id, None)
                raise
        logger.info("Created session %s", _short(session_id))
        return session_id

    def get(self, session_id: str | None) -> Session | None:
        """Resolve a session id, refreshing its last-access timestamp."""
        if not session_id:
            return None
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                logger.debug("Unknown session %s", _short(session_id))
                return None
            previous = session.last_accessed_at
            session.last_accessed_at = max(_now(), session.created_at)
            try:
                self._persist()
            except PersistenceError:
                session.last_accessed_at = previous
                raise
            return Session(
                id=session.id,
                password=session.password,
                created_at=session.created_at,
                last_accessed_at=session.last_accessed_at,
            )

    def destroy(self, session_id: str | None) -> bool:
        """Remove a session. Returns whether it existed."""
        if not session_id:
            return False
        with self._lock:
            if self._sessions.pop(session_id, None) is None:
                return False
            self._persist()
        logger.info("Destroyed session %s", _short(session_id))
        return True

    def _persist(self) -> None:
        # Caller holds the lock
        self._document.save({sid: s.to_dict() for sid, s in self._sessions.items()})
