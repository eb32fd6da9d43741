"""
Session Table
=============

The single authoritative map from session id to live session.

All methods are synchronous, so each one runs to completion without
yielding to the event loop and is atomic with respect to every other
request handler and the reaper.
"""

import uuid
from typing import Dict, Iterator, List, Optional

from zabbix_mcp.config.logging import get_logger

from .errors import SessionLimitError
from .session import Session

logger = get_logger(__name__)


def canonical_session_id(raw: str) -> Optional[str]:
    """
    Canonical form of a UUID session id.

    Accepts upper case, hyphenless, ``{...}`` and ``urn:uuid:`` spellings.
    Returns None for values that are not UUIDs.
    """
    try:
        return str(uuid.UUID(raw.strip()))
    except (ValueError, AttributeError):
        return None


class SessionTable:
    """In-memory registry of live sessions."""

    def __init__(self, max_sessions: Optional[int] = None):
        self.max_sessions = max_sessions
        self._sessions: Dict[str, Session] = {}
        self.logger = logger.bind(component="session_table")

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __iter__(self) -> Iterator[Session]:
        return iter(self.sessions())

    def insert(self, session: Session) -> None:
        """
        Register a session.

        Raises:
            ValueError: If the id is already registered
            SessionLimitError: If the table is full
        """
        if session.id in self._sessions:
            raise ValueError(f"Session {session.id} already registered")
        if self.max_sessions is not None and len(self._sessions) >= self.max_sessions:
            raise SessionLimitError(self.max_sessions)
        self._sessions[session.id] = session
        self.logger.debug("Session registered", session_id=session.id, total=len(self._sessions))

    def get(self, session_id: str) -> Optional[Session]:
        """Exact lookup."""
        return self._sessions.get(session_id)

    def resolve(self, raw_id: str) -> Optional[Session]:
        """
        Find the session a client-supplied id refers to.

        Tries the exact id, then its canonical UUID spelling, then the id
        tracked by each session's channel.
        """
        if not raw_id:
            return None

        session = self._sessions.get(raw_id)
        if session is not None:
            return session

        canonical = canonical_session_id(raw_id)
        if canonical is not None:
            session = self._sessions.get(canonical)
            if session is not None:
                self.logger.debug("Resolved session by canonical id", requested=raw_id)
                return session

        for session in self._sessions.values():
            if session.channel.session_id == raw_id:
                self.logger.debug("Resolved session by channel id", requested=raw_id)
                return session
        return None

    def remove(self, session_id: str) -> Optional[Session]:
        """Remove and return a session; None if it was not registered."""
        session = self._sessions.pop(session_id, None)
        if session is not None:
            self.logger.debug("Session removed", session_id=session_id, total=len(self._sessions))
        return session

    def sessions(self) -> List[Session]:
        """Snapshot of live sessions, safe to iterate while the table changes."""
        return list(self._sessions.values())

    def ids(self) -> List[str]:
        return list(self._sessions)
