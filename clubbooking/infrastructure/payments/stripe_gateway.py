from __future__ import annotations

import json
import logging

import stripe

from clubbooking.application.exceptions import PaymentGatewayError
from clubbooking.application.ports.payment_gateway import (
    CheckoutSession,
    GatewayEvent,
    PaymentGatewayPort,
    RefundReceipt,
)
from clubbooking.core.config import settings


class StripePaymentGateway(PaymentGatewayPort):
    def __init__(
        self,
        api_key: str | None = None,
        webhook_secret: str | None = None,
        currency: str | None = None,
        webhook_tolerance_seconds: int | None = None,
    ) -> None:
        self._api_key = api_key or settings.STRIPE_SECRET_KEY
        self._webhook_secret = webhook_secret or settings.STRIPE_WEBHOOK_SECRET
        self._currency = (currency or settings.CURRENCY).lower()
        self._tolerance = webhook_tolerance_seconds or settings.STRIPE_WEBHOOK_TOLERANCE_SECONDS
        self._logger = logging.getLogger(__name__)

        if not self._api_key:
            raise ValueError("STRIPE_SECRET_KEY is required for the Stripe payment gateway")

    def create_refund(
        self,
        charge_id: str,
        amount: int,
        reason: str,
        metadata: dict[str, str],
        idempotency_key: str | None = None,
    ) -> RefundReceipt:
        try:
            payment_intent = stripe.PaymentIntent.retrieve(charge_id, api_key=self._api_key)
            if payment_intent.status != "succeeded":
                raise PaymentGatewayError(
                    f"Payment {charge_id} cannot be refunded in status {payment_intent.status}"
                )

            params = {
                "payment_intent": charge_id,
                "amount": amount,
                "reason": reason,
                "metadata": metadata,
                "api_key": self._api_key,
            }
            if idempotency_key:
                params["idempotency_key"] = idempotency_key
            refund = stripe.Refund.create(**params)
        except stripe.StripeError as e:
            self._logger.error(
                "Stripe refund failed",
                extra={"booking_id": metadata.get("bookingId"), "amount": amount, "error": str(e)},
            )
            raise PaymentGatewayError(f"Stripe refund failed: {e}") from e

        self._logger.info(
            "Stripe refund created",
            extra={"booking_id": metadata.get("bookingId"), "refund_id": refund.id, "amount": refund.amount},
        )
        return RefundReceipt(refund_id=refund.id, amount=refund.amount, status=refund.status)

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
        product_data = {"name": description}
        if line_item_detail:
            product_data["description"] = line_item_detail

        params = {
            "payment_method_types": ["card"],
            "line_items": [
                {
                    "price_data": {
                        "currency": self._currency,
                        "product_data": product_data,
                        "unit_amount": amount,
                    },
                    "quantity": 1,
                }
            ],
            "mode": "payment",
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata,
            "api_key": self._api_key,
        }
        if customer_email:
            params["customer_email"] = customer_email

        try:
            session = stripe.checkout.Session.create(**params)
        except stripe.StripeError as e:
            self._logger.error(
                "Stripe checkout creation failed",
                extra={"booking_id": metadata.get("bookingId"), "amount": amount, "error": str(e)},
            )
            raise PaymentGatewayError(f"Stripe checkout creation failed: {e}") from e

        return CheckoutSession(checkout_id=session.id, url=session.url, amount=amount)

    def parse_webhook(self, payload: bytes, signature: str | None) -> GatewayEvent:
        if not signature:
            raise ValueError("Missing Stripe-Signature header")
        if not self._webhook_secret:
            self._logger.error("Missing webhook secret for signature verification")
            raise ValueError("Webhook secret is not configured")

        try:
            stripe.Webhook.construct_event(payload, signature, self._webhook_secret, tolerance=self._tolerance)
        except stripe.SignatureVerificationError as e:
            raise ValueError("Webhook signature verification failed") from e

        data = json.loads(payload.decode("utf-8"))
        obj = (data.get("data") or {}).get("object") or {}
        return GatewayEvent(
            event_id=str(data.get("id", "")),
            type=str(data.get("type", "")),
            object_id=obj.get("id"),
            payment_status=obj.get("payment_status"),
            metadata={str(k): str(v) for k, v in (obj.get("metadata") or {}).items()},
            payload=data,
        )
