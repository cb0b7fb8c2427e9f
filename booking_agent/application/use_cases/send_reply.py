from __future__ import annotations

import logging

from booking_agent.application.ports.message_platform import MessagePlatformPort
from booking_agent.domain.entities.outbound import OutboundMessage


class SendReplyUseCase:
    def __init__(self, platform: MessagePlatformPort, auto_reply_enabled: bool = True) -> None:
        self._platform = platform
        self._auto_reply_enabled = auto_reply_enabled
        self._logger = logging.getLogger(__name__)

    def execute(self, recipient_id: str, messages: list[OutboundMessage]) -> int:
        """Send replies in order. Returns how many were actually delivered."""
        if not self._auto_reply_enabled:
            for message in messages:
                self._logger.info(
                    "WOULD_SEND_REPLY", extra={"user_id": recipient_id, "message_kind": message.kind, "text": message.body}
                )
            self._logger.info("AUTO_REPLY_ENABLED=false -> skipping send")
            return 0

        delivered = 0
        for message in messages:
            if self._platform.deliver(recipient_id, message):
                delivered += 1
            else:
                self._logger.warning(
                    "Reply not delivered", extra={"user_id": recipient_id, "message_kind": message.kind}
                )
        return delivered
