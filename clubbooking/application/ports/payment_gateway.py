from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class RefundReceipt:
    refund_id: str
    amount: int
    status: str


@dataclass(frozen=True)
class CheckoutSession:
    checkout_id: str
    url: str
    amount: int


@dataclass(frozen=True)
class GatewayEvent:
    event_id: str
    type: str
    object_id: str | None = None
    payment_status: str | None = None  # checkout objects: "paid", "unpaid", "no_payment_required"
    metadata: dict[str, str] = field(default_factory=dict)
    payload: dict[str, Any] = field(default_factory=dict)


class PaymentGatewayPort(ABC):
    @abstractmethod
    def create_refund(
        self,
        charge_id: str,
        amount: int,
        reason: str,
        metadata: dict[str, str],
        idempotency_key: str | None = None,
    ) -> RefundReceipt:
        """Refund `amount` pence against `charge_id`. Raises PaymentGatewayError on failure."""
        raise NotImplementedError

    @abstractmethod
    def create_checkout(
        self,
        description: str,
        amount: int,
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
        customer_email: str | None = None,
        line_item_detail: str | None = None,
    ) -> CheckoutSession:
        """Create a hosted checkout collecting exactly `amount` pence. Raises PaymentGatewayError on failure."""
        raise NotImplementedError

    @abstractmethod
    def parse_webhook(self, payload: bytes, signature: str | None) -> GatewayEvent:
        """Verify and decode a webhook delivery. Raises ValueError when the signature does not match."""
        raise NotImplementedError
