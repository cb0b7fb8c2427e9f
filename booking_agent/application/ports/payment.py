from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class PaymentLink:
    id: str
    url: str


@dataclass(frozen=True)
class PaymentStatus:
    paid: bool
    status: str
    payment_id: str | None = None


class PaymentPort(ABC):
    @abstractmethod
    def create_payment_link(
        self,
        amount: float,
        currency: str,
        reference_id: str,
        description: str,
        customer: dict[str, str],
        notes: dict[str, str] | None = None,
    ) -> PaymentLink:
        raise NotImplementedError

    @abstractmethod
    def get_payment_status(self, link_id: str) -> PaymentStatus:
        raise NotImplementedError
