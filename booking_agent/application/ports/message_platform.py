from abc import ABC, abstractmethod

from booking_agent.domain.entities.outbound import OutboundMessage


class MessagePlatformPort(ABC):
    @abstractmethod
    def deliver(self, recipient_id: str, message: OutboundMessage) -> bool:
        raise NotImplementedError
