"""
Session registry - one TraceDetector per session.

Detectors are not thread-safe, so each session carries its own lock and all
access goes through ``use()``. Detectors are never shared across sessions.
"""

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List

from tracemem.detector import TraceDetector
from tracemem.exceptions import SessionNotFoundError
from tracemem.utils.logger import get_logger

logger = get_logger("Sessions")


@dataclass
class Session:
    session_id: str
    detector: TraceDetector
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


class SessionRegistry:
    def __init__(self, detector_factory: Callable[[], TraceDetector] = TraceDetector):
        self._factory = detector_factory
        self._sessions: Dict[str, Session] = {}
        # Guards the mapping only; detector access uses the per-session lock
        self._lock = threading.Lock()

    def _get(self, session_id: str, create: bool) -> Session:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                if not create:
                    raise SessionNotFoundError(session_id)
                session = Session(session_id=session_id, detector=self._factory())
                self._sessions[session_id] = session
                logger.info(f"🆕 Session created: {session_id}")
            return session

    @contextmanager
    def use(self, session_id: str, create: bool = False) -> Iterator[TraceDetector]:
        """
        Hold the session lock and yield its detector.

        Raises:
            SessionNotFoundError: If the session is unknown and ``create`` is False
        """
        session = self._get(session_id, create)
        with session.lock:
            yield session.detector

    def remove(self, session_id: str) -> bool:
        with self._lock:
            removed = self._sessions.pop(session_id, None) is not None
        if removed:
            logger.info(f"🗑️ Session removed: {session_id}")
        return removed

    def session_ids(self) -> List[str]:
        with self._lock:
            return list(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions
