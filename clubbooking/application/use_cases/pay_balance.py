from __future__ import annotations

import logging
from dataclasses import dataclass

from clubbooking.application.exceptions import InvalidStateError
from clubbooking.application.ports.booking_repository import BookingRepositoryPort
from clubbooking.application.ports.payment_gateway import PaymentGatewayPort
from clubbooking.application.utils.guards import load_owned_booking
from clubbooking.domain.entities.booking import Booking, BookingStatus, PaymentStatus
from clubbooking.domain.entities.session import Session

BALANCE_PAYMENT_TYPE = "balance"


@dataclass(frozen=True)
class BalanceDetails:
    booking_id: str
    booking_ref: str
    child_name: str
    total_amount: int
    deposit_paid: int
    balance_due: int
    payment_status: str
    balance_paid: bool
    session: Session | None


@dataclass(frozen=True)
class BalanceCheckout:
    booking_id: str
    checkout_id: str
    checkout_url: str
    amount: int


class PayBalanceUseCase:
    def __init__(self, repository: BookingRepositoryPort, gateway: PaymentGatewayPort, base_url: str) -> None:
        self._repository = repository
        self._gateway = gateway
        self._base_url = base_url.rstrip("/")
        self._logger = logging.getLogger(__name__)

    def get_details(self, booking_id: str, caller_email: str | None) -> BalanceDetails:
        booking = load_owned_booking(self._repository, booking_id, caller_email)
        return BalanceDetails(
            booking_id=booking.id,
            booking_ref=booking.booking_ref,
            child_name=booking.child_name,
            total_amount=booking.amount,
            deposit_paid=booking.deposit_paid,
            balance_due=0 if booking.balance_paid_at else max(0, booking.outstanding_balance),
            payment_status=booking.payment_status.value,
            balance_paid=booking.balance_paid_at is not None,
            session=self._repository.get_session(booking.session_id),
        )

    def execute(self, booking_id: str, caller_email: str | None) -> BalanceCheckout:
        booking = load_owned_booking(self._repository, booking_id, caller_email)
        balance_due = self._ensure_balance_due(booking)

        session = self._repository.get_session(booking.session_id)
        description = f"Balance payment: {session.name}" if session else "Balance payment"

        checkout = self._gateway.create_checkout(
            description=description,
            line_item_detail=f"Remaining balance for booking {booking.booking_ref}",
            amount=balance_due,
            success_url=f"{self._base_url}/portal/bookings/{booking.id}?balance_paid=true",
            cancel_url=f"{self._base_url}/portal/bookings/{booking.id}/pay-balance?cancelled=true",
            customer_email=booking.parent_email,
            metadata={
                "paymentType": BALANCE_PAYMENT_TYPE,
                "bookingId": booking.id,
                "bookingRef": booking.booking_ref,
                "originalAmount": str(booking.amount),
                "depositPaid": str(booking.deposit_paid),
            },
        )

        self._repository.update_booking(booking.id, {"balance_checkout_id": checkout.checkout_id})
        self._logger.info(
            "Balance checkout created",
            extra={"booking_id": booking.id, "amount": balance_due},
        )
        return BalanceCheckout(
            booking_id=booking.id,
            checkout_id=checkout.checkout_id,
            checkout_url=checkout.url,
            amount=balance_due,
        )

    def _ensure_balance_due(self, booking: Booking) -> int:
        if booking.status != BookingStatus.confirmed:
            raise InvalidStateError("Only confirmed bookings can pay a balance")
        if booking.balance_paid_at is not None:
            raise InvalidStateError("Balance has already been paid")
        if booking.payment_status != PaymentStatus.deposit_paid:
            raise InvalidStateError("No balance due on this booking")
        balance_due = booking.outstanding_balance
        if balance_due <= 0:
            raise InvalidStateError("No balance due")
        return balance_due
