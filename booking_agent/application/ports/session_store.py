from abc import ABC, abstractmethod
from contextlib import AbstractContextManager

from booking_agent.domain.entities.session import Session


class SessionStorePort(ABC):
    @abstractmethod
    def get(self, user_id: str) -> Session:
        """Return the live session for user_id, creating a fresh one if absent or expired."""
        raise NotImplementedError

    @abstractmethod
    def save(self, session: Session) -> None:
        raise NotImplementedError

    @abstractmethod
    def clear(self, user_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def find_by_id(self, session_id: str) -> Session | None:
        raise NotImplementedError

    @abstractmethod
    def lock(self, user_id: str) -> AbstractContextManager:
        """Serialize read-modify-write of one user's session."""
        raise NotImplementedError
