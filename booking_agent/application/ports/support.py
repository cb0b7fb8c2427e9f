from abc import ABC, abstractmethod

from booking_agent.domain.entities.session import Session


class SupportTicketPort(ABC):
    @abstractmethod
    def create_ticket(self, session: Session, name: str, email: str, phone: str, description: str) -> str | None:
        """Create a support ticket. Returns the ticket reference, or None on failure."""
        raise NotImplementedError
