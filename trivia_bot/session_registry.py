"""
In-memory table of running quiz sessions.
"""
import logging
import threading
from typing import Dict, List, Optional

from .models import QuizSession


class SessionRegistry:
    """
    Stores quiz sessions by id.

    The registry does not enforce one quiz per channel; callers check
    ``get_by_channel`` before creating a session.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._sessions: Dict[str, QuizSession] = {}
        self._lock = threading.Lock()

    def create(self, session: QuizSession) -> QuizSession:
        with self._lock:
            if session.id in self._sessions:
                raise ValueError(f"Session {session.id} is already registered")
            self._sessions[session.id] = session
        self.logger.info(
            f"Registered session {session.id} for channel {session.channel_id}",
            extra={'event_type': 'session_registered', 'session_id': session.id,
                   'channel_id': session.channel_id}
        )
        return session

    def get(self, session_id: str) -> Optional[QuizSession]:
        with self._lock:
            return self._sessions.get(session_id)

    def get_by_channel(self, channel_id: int) -> Optional[QuizSession]:
        """Return the first still-active session bound to the channel."""
        with self._lock:
            for session in self._sessions.values():
                if session.channel_id == channel_id and session.is_active:
                    return session
        return None

    def remove(self, session_id: str) -> bool:
        """Remove a session; removing an unknown id is a no-op."""
        with self._lock:
            removed = self._sessions.pop(session_id, None)
        if removed is not None:
            self.logger.info(
                f"Removed session {session_id}",
                extra={'event_type': 'session_removed', 'session_id': session_id}
            )
        return removed is not None

    def all_sessions(self) -> List[QuizSession]:
        with self._lock:
            return list(self._sessions.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions
