"""
Registry of live relay sessions.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from .session import Session


class SessionRegistry:
    """Thread-safe collection of live sessions.

    Mutated by the accept loop (``add``) and by each session's teardown
    (``remove``), iterated by every broadcast (``for_each``).

    ``for_each`` takes a snapshot under the lock and visits outside it, so a
    visitor may block on I/O without stalling ``add``/``remove``. Before each
    visit the session is checked again: a session removed during iteration is
    not visited, a session present for the whole iteration always is, and a
    session added after iteration started may or may not be.
    """

    def __init__(self) -> None:
        self._sessions: list[Session] = []
        self._lock = threading.Lock()

    def add(self, session: Session) -> None:
        """Register a session. Adding an already registered session is a no-op."""
        with self._lock:
            if session not in self._sessions:
                self._sessions.append(session)

    def remove(self, session: Session) -> bool:
        """Deregister a session. Returns whether it was registered."""
        with self._lock:
            try:
                self._sessions.remove(session)
            except ValueError:
                return False
            return True

    def snapshot(self) -> list[Session]:
        """Copy of the current membership."""
        with self._lock:
            return list(self._sessions)

    def for_each(self, visitor: Callable[[Session], None]) -> None:
        """Call visitor for every live session."""
        for session in self.snapshot():
            if session in self:
                visitor(session)

    def close_all(self) -> None:
        """Close every registered session."""
        for session in self.snapshot():
            session.close()

    def __contains__(self, session: object) -> bool:
        with self._lock:
            return session in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
