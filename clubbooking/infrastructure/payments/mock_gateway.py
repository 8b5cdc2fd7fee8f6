from __future__ import annotations

import json
import logging
from typing import Any

import stripe

from clubbooking.application.exceptions import PaymentGatewayError
from clubbooking.application.ports.payment_gateway import (
    CheckoutSession,
    GatewayEvent,
    PaymentGatewayPort,
    RefundReceipt,
)


class MockPaymentGateway(PaymentGatewayPort):
    """In-memory gateway; webhook deliveries are still checked with Stripe's signature scheme."""

    WEBHOOK_TOLERANCE_SECONDS = 300

    def __init__(
        self,
        fail_refunds: bool = False,
        fail_checkouts: bool = False,
        webhook_secret: str | None = None,
        env: str = "dev",
    ) -> None:
        self.fail_refunds = fail_refunds
        self.fail_checkouts = fail_checkouts
        self.refunds: list[dict[str, Any]] = []
        self.checkouts: list[dict[str, Any]] = []
        self._refunds_by_key: dict[str, RefundReceipt] = {}
        self._webhook_secret = webhook_secret
        self._env = env
        self._logger = logging.getLogger(__name__)

    def create_refund(
        self,
        charge_id: str,
        amount: int,
        reason: str,
        metadata: dict[str, str],
        idempotency_key: str | None = None,
    ) -> RefundReceipt:
        if self.fail_refunds:
            raise PaymentGatewayError("Mock refund failure")
        if idempotency_key and idempotency_key in self._refunds_by_key:
            return self._refunds_by_key[idempotency_key]

        receipt = RefundReceipt(refund_id=f"mock_re_{len(self.refunds) + 1}", amount=amount, status="succeeded")
        self.refunds.append(
            {
                "refund_id": receipt.refund_id,
                "charge_id": charge_id,
                "amount": amount,
                "reason": reason,
                "metadata": dict(metadata),
            }
        )
        if idempotency_key:
            self._refunds_by_key[idempotency_key] = receipt
        self._logger.info("Mock refund created", extra={"refund_id": receipt.refund_id, "amount": amount})
        return receipt

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
        if self.fail_checkouts:
            raise PaymentGatewayError("Mock checkout failure")

        checkout_id = f"mock_cs_{len(self.checkouts) + 1}"
        self.checkouts.append(
            {
                "checkout_id": checkout_id,
                "description": description,
                "amount": amount,
                "success_url": success_url,
                "cancel_url": cancel_url,
                "customer_email": customer_email,
                "metadata": dict(metadata),
            }
        )
        self._logger.info("Mock checkout created", extra={"amount": amount, "reason": description})
        return CheckoutSession(checkout_id=checkout_id, url=f"https://checkout.mock/{checkout_id}", amount=amount)

    def parse_webhook(self, payload: bytes, signature: str | None) -> GatewayEvent:
        if not signature:
            if self._env.lower() not in {"dev", "local", "test"}:
                raise ValueError("Missing Stripe-Signature header")
            self._logger.warning("Missing signature header; accepting in dev mode")
        elif not self._webhook_secret:
            self._logger.error("Missing webhook secret for signature verification")
            raise ValueError("Webhook secret is not configured")
        else:
            try:
                stripe.WebhookSignature.verify_header(
                    payload.decode("utf-8"), signature, self._webhook_secret, tolerance=self.WEBHOOK_TOLERANCE_SECONDS
                )
            except stripe.SignatureVerificationError as e:
                raise ValueError("Webhook signature verification failed") from e

        data = json.loads(payload.decode("utf-8")) if payload else {}
        obj = (data.get("data") or {}).get("object") or {}
        return GatewayEvent(
            event_id=str(data.get("id", "")),
            type=str(data.get("type", "")),
            object_id=obj.get("id"),
            payment_status=obj.get("payment_status"),
            metadata={str(k): str(v) for k, v in (obj.get("metadata") or {}).items()},
            payload=data,
        )
