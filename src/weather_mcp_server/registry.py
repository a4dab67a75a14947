"""Session registry.

In-memory table of live stream sessions keyed by connection id. The
registry is owned by the application (app.state.registry) and is only
touched from the event loop thread, so no lock is needed: callers must
not read-then-mutate across an await without re-checking existence.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from .errors import SessionConflict, SessionNotFound
from .transport.sse import StreamChannel

logger = logging.getLogger(__name__)


def generate_session_id() -> str:
    """Mint a random connection id."""
    return f"conn_{uuid.uuid4().hex}"


@dataclass
class Session:
    """A registered stream subscription."""

    id: str
    channel: StreamChannel
    ready: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        return {
            "connectionId": self.id,
            "ready": self.ready,
            "createdAt": self.created_at.isoformat(),
        }


class SessionRegistry:
    """Owns the set of live sessions."""

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}

    def create(self, requested_id: str | None = None) -> Session:
        """Register a new, not-ready session.

        Args:
            requested_id: Client-supplied id. Rejected if already live.

        Raises:
            SessionConflict: requested_id belongs to a live session
        """
        if requested_id:
            if requested_id in self._sessions:
                raise SessionConflict(requested_id)
            session_id = requested_id
        else:
            session_id = generate_session_id()
            while session_id in self._sessions:
                session_id = generate_session_id()

        session = Session(id=session_id, channel=StreamChannel(session_id))
        self._sessions[session_id] = session
        logger.info(f"Registered session {session_id}")
        return session

    def mark_ready(self, session_id: str) -> Session:
        """Flag a session as ready. Idempotent."""
        session = self.get(session_id)
        session.ready = True
        return session

    def get(self, session_id: str) -> Session:
        """Look up a live session.

        Raises:
            SessionNotFound: no such session
        """
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def remove(self, session_id: str) -> Session | None:
        """Remove a session and close its channel. No-op if absent."""
        session = self._sessions.pop(session_id, None)
        if session is None:
            return None

        session.channel.close()
        logger.info(f"Removed session {session_id}")
        return session

    def list_sessions(self) -> list[dict[str, Any]]:
        """Snapshot of live sessions for diagnostics."""
        return [s.to_dict() for s in self._sessions.values()]

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
