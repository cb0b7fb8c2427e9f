from __future__ import annotations

import logging

from booking_agent.application.ports.payment import PaymentLink, PaymentPort, PaymentStatus


class MockPaymentProcessor(PaymentPort):
    def __init__(self) -> None:
        self._links: dict[str, dict[str, str | float]] = {}
        self._paid: dict[str, str] = {}
        self._logger = logging.getLogger(__name__)

    def create_payment_link(
        self,
        amount: float,
        currency: str,
        reference_id: str,
        description: str,
        customer: dict[str, str],
        notes: dict[str, str] | None = None,
    ) -> PaymentLink:
        link_id = f"plink_mock_{len(self._links) + 1}"
        self._links[link_id] = {"amount": amount, "currency": currency, "reference_id": reference_id}
        self._logger.info("Mock payment link created", extra={"reason": reference_id})
        return PaymentLink(id=link_id, url=f"https://pay.example.com/{link_id}")

    def mark_paid(self, link_id: str) -> str:
        """Simulate the customer completing checkout."""
        payment_id = f"pay_mock_{link_id.rsplit('_', 1)[-1]}"
        self._paid[link_id] = payment_id
        return payment_id

    def get_payment_status(self, link_id: str) -> PaymentStatus:
        if link_id in self._paid:
            return PaymentStatus(paid=True, status="paid", payment_id=self._paid[link_id])
        if link_id in self._links:
            return PaymentStatus(paid=False, status="created")
        return PaymentStatus(paid=False, status="unknown")
