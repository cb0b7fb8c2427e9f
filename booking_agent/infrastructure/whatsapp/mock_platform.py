from __future__ import annotations

import logging

from booking_agent.application.ports.message_platform import MessagePlatformPort
from booking_agent.domain.entities.outbound import OutboundMessage


class MockWhatsAppPlatform(MessagePlatformPort):
    def __init__(self) -> None:
        self.sent: list[tuple[str, OutboundMessage]] = []
        self._logger = logging.getLogger(__name__)

    def deliver(self, recipient_id: str, message: OutboundMessage) -> bool:
        self.sent.append((recipient_id, message))
        self._logger.info(
            "Mock send to WhatsApp", extra={"user_id": recipient_id, "message_kind": message.kind, "text": message.body}
        )
        return True
