from __future__ import annotations

import logging

from booking_agent.application.ports.session_store import SessionStorePort
from booking_agent.application.use_cases.conversation import ConversationEngine, Turn
from booking_agent.application.use_cases.send_reply import SendReplyUseCase
from booking_agent.application.utils import message_builders as mb
from booking_agent.application.utils.i18n import translate
from booking_agent.application.utils.idempotency import should_process
from booking_agent.domain.entities.message import InboundEvent
from booking_agent.domain.entities.session import Session
from booking_agent.domain.entities.step import Step


class HandleIncomingEventUseCase:
    def __init__(self, store: SessionStorePort, engine: ConversationEngine, send_reply: SendReplyUseCase) -> None:
        self._store = store
        self._engine = engine
        self._send_reply = send_reply
        self._logger = logging.getLogger(__name__)

    def handle(self, event: InboundEvent) -> None:
        language = None
        try:
            with self._store.lock(event.sender_id):
                session = self._store.get(event.sender_id)
                language = session.language
                if not should_process(session, event.id):
                    self._logger.info(
                        "Duplicate event ignored", extra={"event_id": event.id, "user_id": event.sender_id}
                    )
                    return

                self._logger.info(
                    "Event received",
                    extra={"event_id": event.id, "user_id": event.sender_id, "step": session.step.value},
                )
                turn = self._engine.handle(session, event)
                self._finish(session, turn)
        except Exception as e:
            self._logger.exception(
                "Error handling event", extra={"event_id": event.id, "user_id": event.sender_id, "reason": str(e)}
            )
            self._apologize(event.sender_id, language)

    def handle_payment_callback(self, reference_id: str) -> bool:
        """Resume a session waiting on payment. Returns False when no such session is waiting."""
        session = self._store.find_by_id(reference_id)
        if session is None:
            self._logger.info("Payment callback without waiting session", extra={"reason": reference_id})
            return False

        try:
            with self._store.lock(session.user_id):
                # The user may have finished or abandoned the session while the callback waited on the lock.
                if self._store.find_by_id(reference_id) is not session:
                    self._logger.info("Payment callback for a closed session", extra={"user_id": session.user_id})
                    return False
                if session.step is not Step.AWAIT_PAYMENT:
                    self._report_orphaned_payment(session)
                    return False
                turn = self._engine.resume_payment(session)
                self._finish(session, turn)
        except Exception as e:
            self._logger.exception(
                "Error handling payment callback", extra={"user_id": session.user_id, "reason": str(e)}
            )
            return False
        return True

    def _report_orphaned_payment(self, session: Session) -> None:
        if session.payment is not None and self._engine.payment_captured(session):
            self._logger.error(
                "Payment captured but session is no longer waiting",
                extra={
                    "user_id": session.user_id,
                    "step": session.step.value,
                    "payment_id": session.payment.payment_id or session.payment.link_id,
                },
            )
        else:
            self._logger.info(
                "Payment callback without waiting session",
                extra={"user_id": session.user_id, "step": session.step.value},
            )

    def _finish(self, session: Session, turn: Turn) -> None:
        if turn.clear_session:
            self._store.clear(session.user_id)
        else:
            self._store.save(session)
        self._send_reply.execute(session.user_id, turn.messages)
        self._logger.info(
            "Turn complete",
            extra={
                "user_id": session.user_id,
                "step": "cleared" if turn.clear_session else session.step.value,
                "status": len(turn.messages),
            },
        )

    def _apologize(self, recipient_id: str, language: str | None) -> None:
        try:
            self._send_reply.execute(recipient_id, [mb.text_message(translate("generic_error", language))])
        except Exception:
            self._logger.exception("Failed to send error reply", extra={"user_id": recipient_id})
