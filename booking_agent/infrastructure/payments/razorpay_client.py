from __future__ import annotations

import logging
from typing import Any

from booking_agent.application.exceptions import PaymentError
from booking_agent.application.ports.payment import PaymentLink, PaymentPort, PaymentStatus
from booking_agent.infrastructure.http.resilient_client import ApiRequest, ResilientApiClient


class RazorpayPaymentClient(PaymentPort):
    def __init__(
        self,
        api: ResilientApiClient,
        key_id: str,
        key_secret: str,
        base_url: str = "https://api.razorpay.com/v1",
        callback_url: str | None = None,
    ) -> None:
        self._api = api
        self._auth = (key_id, key_secret)
        self._base_url = base_url.rstrip("/")
        self._callback_url = callback_url
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
        payload: dict[str, Any] = {
            "amount": int(round(amount * 100)),  # smallest currency unit
            "currency": currency,
            "reference_id": reference_id,
            "description": description,
            "customer": customer,
            "notify": {"sms": False, "email": False},
            "notes": dict(notes or {}),
        }
        if self._callback_url:
            payload["callback_url"] = self._callback_url
            payload["callback_method"] = "get"

        resp = self._api.call(ApiRequest("POST", f"{self._base_url}/payment_links", json=payload, auth=self._auth))
        data = resp.json_or_empty()
        if not resp.ok or not data.get("id") or not data.get("short_url"):
            self._logger.error(
                "Payment link creation failed",
                extra={"status": resp.status, "reason": (data.get("error") or {}).get("description")},
            )
            raise PaymentError(f"Payment link creation failed with status {resp.status}")

        self._logger.info("Payment link created", extra={"reason": reference_id})
        return PaymentLink(id=str(data["id"]), url=str(data["short_url"]))

    def get_payment_status(self, link_id: str) -> PaymentStatus:
        resp = self._api.call(ApiRequest("GET", f"{self._base_url}/payment_links/{link_id}", auth=self._auth))
        data = resp.json_or_empty()
        if not resp.ok:
            return PaymentStatus(paid=False, status="unknown")

        status = str(data.get("status") or "unknown")
        payment_id = None
        for payment in data.get("payments") or []:
            if isinstance(payment, dict) and payment.get("status") == "captured":
                payment_id = payment.get("payment_id")
                break
        return PaymentStatus(paid=status == "paid", status=status, payment_id=payment_id)
