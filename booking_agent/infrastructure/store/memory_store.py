from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from booking_agent.application.ports.session_store import SessionStorePort
from booking_agent.domain.entities.session import Session


class MemorySessionStore(SessionStorePort):
    def __init__(self, ttl_seconds: float = 15 * 60, clock: Callable[[], float] = time.time) -> None:
        self._sessions: dict[str, Session] = {}
        # user_id -> (last processed event id, cleared at)
        self._tombstones: dict[str, tuple[str, float]] = {}
        self._locks: dict[str, threading.RLock] = {}
        self._lock_lock = threading.Lock()  # Lock for managing locks dict
        self._ttl = ttl_seconds
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    def lock(self, user_id: str) -> threading.RLock:
        """Get or create the lock for a user_id."""
        with self._lock_lock:
            if user_id not in self._locks:
                self._locks[user_id] = threading.RLock()
            return self._locks[user_id]

    def get(self, user_id: str) -> Session:
        now = self._clock()
        with self.lock(user_id):
            session = self._sessions.get(user_id)
            if session is not None and now - session.updated_at > self._ttl:
                self._logger.info("Session expired", extra={"user_id": user_id, "step": session.step.value})
                session = None
            if session is None:
                session = Session(user_id=user_id, updated_at=now)
                session.last_processed_event_id = self._pop_tombstone(user_id, now)
                self._sessions[user_id] = session
                self._logger.info("Session created", extra={"user_id": user_id})
            session.updated_at = now
            return session

    def save(self, session: Session) -> None:
        with self.lock(session.user_id):
            session.updated_at = self._clock()
            self._sessions[session.user_id] = session

    def clear(self, user_id: str) -> None:
        with self.lock(user_id):
            session = self._sessions.pop(user_id, None)
            if session is not None and session.last_processed_event_id:
                self._tombstones[user_id] = (session.last_processed_event_id, self._clock())
            self._logger.info("Session cleared", extra={"user_id": user_id})

    def find_by_id(self, session_id: str) -> Session | None:
        now = self._clock()
        for session in list(self._sessions.values()):
            if session.id == session_id and now - session.updated_at <= self._ttl:
                return session
        return None

    def _pop_tombstone(self, user_id: str, now: float) -> str | None:
        tombstone = self._tombstones.pop(user_id, None)
        if tombstone is None:
            return None
        event_id, cleared_at = tombstone
        if now - cleared_at > self._ttl:
            return None
        return event_id
