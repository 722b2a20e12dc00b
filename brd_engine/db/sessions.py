"""In-memory session store.

Projects are not persisted; sessions live for the lifetime of the process.
"""

from functools import lru_cache

from brd_engine.core.errors import SessionNotFound
from brd_engine.core.logging import get_logger
from brd_engine.core.session import BRDSession

logger = get_logger(__name__)


class SessionStore:
    """Process-local map of session id to session."""

    def __init__(self) -> None:
        self._sessions: dict[str, BRDSession] = {}

    def add(self, session: BRDSession) -> BRDSession:
        self._sessions[session.id] = session
        logger.info(f"Session {session.id} created for project '{session.project_title}'")
        return session

    def get(self, session_id: str) -> BRDSession:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise SessionNotFound(session_id) from None

    def clear(self) -> None:
        self._sessions.clear()

    def __len__(self) -> int:
        return len(self._sessions)


@lru_cache
def get_session_store() -> SessionStore:
    """Get the process-wide session store."""
    return SessionStore()
