"""Connection lifecycle and the active-session collection."""

from __future__ import annotations

import itertools
import logging

from .session import Session
from .transport import Transport

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Active sessions keyed by a stable integer id.

    Writers: ConnectionLifecycle (open/close).
    Readers: BroadcastScheduler, health endpoint.
    Everything runs on one event loop, so no locking.
    """

    def __init__(self) -> None:
        self._sessions: dict[int, Session] = {}

    def add(self, session: Session) -> None:
        self._sessions[session.id] = session

    def remove(self, session_id: int) -> Session | None:
        return self._sessions.pop(session_id, None)

    def get(self, session_id: int) -> Session | None:
        return self._sessions.get(session_id)

    def sessions(self) -> list[Session]:
        """Copy of the active sessions, in registration order."""
        return list(self._sessions.values())

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions


class ConnectionLifecycle:
    """Registers sessions on connect and deregisters them on disconnect.

    Removal is synchronous, so a tick that starts after ``close`` returns
    never attempts delivery to that session. A reconnecting client always
    gets a fresh, empty session.
    """

    def __init__(self, registry: SessionRegistry, supported: tuple[str, ...]) -> None:
        self._registry = registry
        self._supported = supported
        self._ids = itertools.count(1)

    def open(self, transport: Transport) -> Session:
        session = Session(next(self._ids), transport, self._supported)
        self._registry.add(session)
        logger.info(
            "Client connected: session %d (%d active)", session.id, len(self._registry)
        )
        return session

    def close(self, session_id: int) -> None:
        """Close and deregister a session. Unknown ids are ignored."""
        session = self._registry.remove(session_id)
        if session is None:
            return
        session.close()
        logger.info(
            "Client disconnected: session %d (%d active)", session_id, len(self._registry)
        )

    def close_all(self) -> None:
        for session in self._registry.sessions():
            self.close(session.id)

    @property
    def registry(self) -> SessionRegistry:
        return self._registry
