from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from clubbooking.application.exceptions import ConcurrentUpdateError, InvalidStateError, SessionFullError
from clubbooking.application.ports.booking_repository import BookingRepositoryPort, WriteBatch
from clubbooking.application.ports.payment_gateway import GatewayEvent
from clubbooking.application.use_cases.notify_customer import NotifyCustomerUseCase
from clubbooking.application.use_cases.pay_balance import BALANCE_PAYMENT_TYPE
from clubbooking.application.use_cases.transfer_booking import (
    TRANSFER_METADATA_TYPE,
    build_transfer_batch,
    ensure_transferable,
)
from clubbooking.application.utils.email_templates import (
    balance_paid_confirmation_email,
    transfer_confirmation_email,
)
from clubbooking.application.utils.guards import utc_now
from clubbooking.domain.entities.booking import BookingStatus, PaymentStatus

CHECKOUT_COMPLETED = "checkout.session.completed"


@dataclass(frozen=True)
class CheckoutCompletionResult:
    action: str  # "transfer_completed", "balance_paid", "already_applied", "needs_attention", "ignored"
    booking_id: str | None = None
    detail: str | None = None


class CompleteCheckoutUseCase:
    """Applies the state change a confirmed checkout was paying for."""

    def __init__(
        self,
        repository: BookingRepositoryPort,
        notifier: NotifyCustomerUseCase,
        business_name: str = "",
    ) -> None:
        self._repository = repository
        self._notifier = notifier
        self._business_name = business_name
        self._logger = logging.getLogger(__name__)

    def execute(self, event: GatewayEvent, now: datetime | None = None) -> CheckoutCompletionResult:
        now = utc_now(now)
        if event.type != CHECKOUT_COMPLETED:
            self._logger.info("Unhandled gateway event", extra={"reason": event.type})
            return CheckoutCompletionResult(action="ignored", detail=event.type)

        metadata = event.metadata or {}
        booking_id = metadata.get("bookingId")
        if event.payment_status != "paid":
            self._logger.info(
                "Checkout completed without payment",
                extra={"booking_id": booking_id, "reason": event.payment_status},
            )
            return CheckoutCompletionResult(action="ignored", booking_id=booking_id, detail="checkout not paid")
        if not booking_id:
            self._logger.error("Checkout completed without bookingId metadata", extra={"reason": event.event_id})
            return CheckoutCompletionResult(action="ignored", detail="missing bookingId")

        if metadata.get("type") == TRANSFER_METADATA_TYPE:
            return self._complete_transfer(booking_id, metadata, now)
        if metadata.get("paymentType") == BALANCE_PAYMENT_TYPE:
            return self._complete_balance(booking_id, event.object_id, now)

        return CheckoutCompletionResult(action="ignored", booking_id=booking_id, detail="not a lifecycle checkout")

    def _complete_transfer(self, booking_id: str, metadata: dict[str, str], now: datetime) -> CheckoutCompletionResult:
        old_session_id = metadata.get("oldSessionId")
        new_session_id = metadata.get("newSessionId")
        try:
            price_difference = int(metadata.get("priceDifference") or 0)
        except ValueError:
            price_difference = 0

        booking = self._repository.get_booking(booking_id)
        old_session = self._repository.get_session(old_session_id) if old_session_id else None
        new_session = self._repository.get_session(new_session_id) if new_session_id else None
        if booking is None or old_session is None or new_session is None:
            return self._needs_attention(booking_id, "booking or session no longer exists")

        if booking.session_id == new_session.id and booking.transferred_from == old_session.id:
            return CheckoutCompletionResult(action="already_applied", booking_id=booking_id)
        if booking.session_id != old_session.id:
            return self._needs_attention(booking_id, "booking is no longer on the original session")

        try:
            ensure_transferable(booking)
        except InvalidStateError as e:
            return self._needs_attention(booking_id, str(e))
        if new_session.is_force_closed:
            return self._needs_attention(booking_id, "target session was closed after payment")

        batch = build_transfer_batch(booking, old_session, new_session, price_difference, now)
        try:
            self._repository.commit(batch)
        except SessionFullError:
            return self._needs_attention(booking_id, "target session filled up after payment")
        except ConcurrentUpdateError as e:
            return self._needs_attention(booking_id, str(e))

        self._logger.info(
            "Upgrade transfer completed",
            extra={"booking_id": booking_id, "session_id": new_session.id, "amount": price_difference},
        )
        email = transfer_confirmation_email(
            booking=booking,
            old_session=old_session,
            new_session=new_session,
            price_difference=price_difference,
            business_name=self._business_name,
        )
        self._notifier.execute(booking.parent_email, email, booking_id=booking_id)
        return CheckoutCompletionResult(action="transfer_completed", booking_id=booking_id)

    def _complete_balance(self, booking_id: str, checkout_id: str | None, now: datetime) -> CheckoutCompletionResult:
        booking = self._repository.get_booking(booking_id)
        if booking is None:
            return self._needs_attention(booking_id, "booking no longer exists")
        if booking.balance_paid_at is not None:
            return CheckoutCompletionResult(action="already_applied", booking_id=booking_id)

        if booking.status != BookingStatus.confirmed or booking.payment_status != PaymentStatus.deposit_paid:
            return self._needs_attention(
                booking_id,
                f"balance paid on a {booking.status.value}/{booking.payment_status.value} booking",
            )

        amount_paid = booking.outstanding_balance
        batch = WriteBatch()
        batch.update_booking(
            booking_id,
            {
                "payment_status": PaymentStatus.paid,
                "balance_paid_at": now,
                "balance_due": 0,
                "balance_checkout_id": checkout_id or booking.balance_checkout_id,
            },
            expected_status=BookingStatus.confirmed,
            expected_payment_status=PaymentStatus.deposit_paid,
        )
        try:
            self._repository.commit(batch)
        except ConcurrentUpdateError as e:
            return self._needs_attention(booking_id, str(e))
        updated = self._repository.get_booking(booking_id)
        self._logger.info("Balance payment completed", extra={"booking_id": booking_id, "amount": amount_paid})

        email = balance_paid_confirmation_email(
            booking=updated,
            session=self._repository.get_session(updated.session_id),
            amount_paid=amount_paid,
            business_name=self._business_name,
        )
        self._notifier.execute(updated.parent_email, email, booking_id=booking_id)
        return CheckoutCompletionResult(action="balance_paid", booking_id=booking_id)

    def _needs_attention(self, booking_id: str, detail: str) -> CheckoutCompletionResult:
        self._logger.error(
            "Paid checkout could not be applied; manual reconciliation required",
            extra={"booking_id": booking_id, "reason": detail},
        )
        return CheckoutCompletionResult(action="needs_attention", booking_id=booking_id, detail=detail)
