from __future__ import annotations

from booking_agent.application.ports.message_platform import MessagePlatformPort
from booking_agent.domain.entities.outbound import OutboundMessage
from booking_agent.infrastructure.whatsapp.whatsapp_client import WhatsAppClient


class WhatsAppPlatform(MessagePlatformPort):
    def __init__(self, client: WhatsAppClient) -> None:
        self._client = client

    def deliver(self, recipient_id: str, message: OutboundMessage) -> bool:
        return self._client.send(recipient_id=recipient_id, message=message)
