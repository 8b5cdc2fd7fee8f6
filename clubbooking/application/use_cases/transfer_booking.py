from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from clubbooking.application.exceptions import (
    ConcurrentUpdateError,
    InvalidStateError,
    SessionFullError,
    SessionUnavailableError,
)
from clubbooking.application.ports.booking_repository import BookingRepositoryPort, WriteBatch
from clubbooking.application.ports.payment_gateway import PaymentGatewayPort
from clubbooking.application.use_cases.notify_customer import NotifyCustomerUseCase
from clubbooking.application.utils.effects import attempt
from clubbooking.application.utils.email_templates import transfer_confirmation_email
from clubbooking.application.utils.guards import load_owned_booking, load_session, utc_now
from clubbooking.application.utils.refund_calculator import format_price
from clubbooking.domain.entities.booking import Booking, BookingStatus, PaymentStatus
from clubbooking.domain.entities.effect import EffectOutcome
from clubbooking.domain.entities.session import Session

TRANSFER_METADATA_TYPE = "session_transfer"


@dataclass(frozen=True)
class TransferOption:
    session: Session
    price_difference: int


@dataclass(frozen=True)
class TransferOptions:
    booking_id: str
    current_session: Session
    options: list[TransferOption] = field(default_factory=list)


@dataclass(frozen=True)
class TransferResult:
    action: str  # "checkout_required", "transfer_complete"
    price_difference: int
    message: str | None = None
    checkout_url: str | None = None
    checkout_id: str | None = None
    refund_amount: int | None = None
    refund_id: str | None = None


def build_transfer_batch(
    booking: Booking,
    old_session: Session,
    new_session: Session,
    price_difference: int,
    now: datetime,
) -> WriteBatch:
    """The booking move and both occupancy counters, to be committed as one unit."""
    batch = WriteBatch()
    batch.update_booking(
        booking.id,
        {
            "session_id": new_session.id,
            "transferred_from": old_session.id,
            "transferred_at": now,
            "transfer_price_difference": price_difference,
            "amount": new_session.price,
        },
        expected_status=BookingStatus.confirmed,
        expected_payment_status=booking.payment_status,
        expected_session_id=old_session.id,
    )
    batch.adjust_enrolled(old_session.id, -1)
    batch.adjust_enrolled(new_session.id, 1)
    return batch


def ensure_transferable(booking: Booking) -> None:
    if booking.status != BookingStatus.confirmed or booking.payment_status != PaymentStatus.paid:
        raise InvalidStateError("Only confirmed and paid bookings can be transferred")


class TransferBookingUseCase:
    def __init__(
        self,
        repository: BookingRepositoryPort,
        gateway: PaymentGatewayPort,
        notifier: NotifyCustomerUseCase,
        base_url: str,
        business_name: str = "",
    ) -> None:
        self._repository = repository
        self._gateway = gateway
        self._notifier = notifier
        self._base_url = base_url.rstrip("/")
        self._business_name = business_name
        self._logger = logging.getLogger(__name__)

    def list_options(self, booking_id: str, caller_email: str | None, now: datetime | None = None) -> TransferOptions:
        now = utc_now(now)
        booking = load_owned_booking(self._repository, booking_id, caller_email)
        ensure_transferable(booking)
        current = load_session(self._repository, booking.session_id, "Current session")

        options = [
            TransferOption(session=s, price_difference=s.price - current.price)
            for s in self._repository.list_sessions()
            if s.id != current.id
            and s.is_active
            and s.service_type == current.service_type
            and s.start_date > now
            and s.is_available
        ]
        options.sort(key=lambda o: (o.session.day_of_week, o.session.start_time))
        return TransferOptions(booking_id=booking.id, current_session=current, options=options)

    def execute(
        self,
        booking_id: str,
        new_session_id: str,
        caller_email: str | None,
        now: datetime | None = None,
    ) -> TransferResult:
        now = utc_now(now)
        if not new_session_id:
            raise InvalidStateError("New session ID is required")

        booking = load_owned_booking(self._repository, booking_id, caller_email)
        ensure_transferable(booking)

        old_session = load_session(self._repository, booking.session_id, "Current session")
        new_session = load_session(self._repository, new_session_id, "New session")
        if new_session.id == old_session.id:
            raise InvalidStateError("Booking is already on the selected session")
        if not new_session.is_available:
            raise SessionUnavailableError("Selected session is full")

        price_difference = new_session.price - old_session.price

        if price_difference > 0:
            return self._request_upgrade_payment(booking, old_session, new_session, price_difference)

        refund = EffectOutcome.skip("refund", "no refund due")
        if price_difference < 0:
            refund = self._refund_downgrade(booking, old_session, new_session, abs(price_difference))

        refund_id = refund.value.refund_id if refund.succeeded else None
        self._swap(booking, old_session, new_session, price_difference, now, refund_id=refund_id)

        if price_difference < 0:
            refund_amount = abs(price_difference)
            return TransferResult(
                action="transfer_complete",
                price_difference=price_difference,
                refund_amount=refund_amount,
                refund_id=refund_id,
                message=f"Transfer complete. A refund of {format_price(refund_amount)} will be processed.",
            )
        return TransferResult(
            action="transfer_complete",
            price_difference=0,
            message="Transfer complete. No payment adjustment needed.",
        )

    def _request_upgrade_payment(
        self,
        booking: Booking,
        old_session: Session,
        new_session: Session,
        price_difference: int,
    ) -> TransferResult:
        # nothing is written until the gateway confirms payment
        checkout = self._gateway.create_checkout(
            description=f"Transfer Upgrade: {old_session.name} to {new_session.name}",
            line_item_detail=f"Session transfer price difference for {booking.child_name}",
            amount=price_difference,
            success_url=f"{self._base_url}/portal/bookings/{booking.id}?transfer=success",
            cancel_url=f"{self._base_url}/portal/bookings/{booking.id}/transfer?cancelled=true",
            customer_email=booking.parent_email,
            metadata={
                "type": TRANSFER_METADATA_TYPE,
                "bookingId": booking.id,
                "oldSessionId": old_session.id,
                "newSessionId": new_session.id,
                "priceDifference": str(price_difference),
            },
        )
        self._logger.info(
            "Transfer upgrade checkout created",
            extra={"booking_id": booking.id, "session_id": new_session.id, "amount": price_difference},
        )
        return TransferResult(
            action="checkout_required",
            price_difference=price_difference,
            checkout_url=checkout.url,
            checkout_id=checkout.checkout_id,
        )

    def _refund_downgrade(
        self,
        booking: Booking,
        old_session: Session,
        new_session: Session,
        amount: int,
    ) -> EffectOutcome:
        if not booking.payment_intent_id:
            self._logger.warning(
                "Downgrade refund due but booking has no charge reference; manual reconciliation required",
                extra={"booking_id": booking.id, "amount": amount},
            )
            return EffectOutcome.skip("refund", "no charge reference")

        outcome = attempt(
            "refund",
            lambda: self._gateway.create_refund(
                charge_id=booking.payment_intent_id,
                amount=amount,
                reason="requested_by_customer",
                metadata={
                    "type": "session_transfer_downgrade",
                    "bookingId": booking.id,
                    "oldSessionId": old_session.id,
                    "newSessionId": new_session.id,
                },
                idempotency_key=f"transfer-{booking.id}-{old_session.id}-{new_session.id}",
            ),
            self._logger,
            booking_id=booking.id,
            amount=amount,
        )
        if outcome.failed:
            self._logger.error(
                "Downgrade refund not issued; manual reconciliation required",
                extra={"booking_id": booking.id, "amount": amount},
            )
        return outcome

    def _swap(
        self,
        booking: Booking,
        old_session: Session,
        new_session: Session,
        price_difference: int,
        now: datetime,
        refund_id: str | None = None,
    ) -> None:
        batch = build_transfer_batch(booking, old_session, new_session, price_difference, now)
        try:
            self._repository.commit(batch)
        except (SessionFullError, ConcurrentUpdateError) as e:
            # a downgrade refund may already have gone out
            self._logger.error(
                "Transfer swap rejected by store; manual reconciliation required",
                extra={
                    "booking_id": booking.id,
                    "session_id": new_session.id,
                    "refund_id": refund_id,
                    "error": str(e),
                },
            )
            if isinstance(e, SessionFullError):
                raise SessionUnavailableError("Selected session is full") from e
            raise InvalidStateError("Booking was modified by another request") from e

        self._logger.info(
            "Booking transferred",
            extra={"booking_id": booking.id, "session_id": new_session.id, "amount": price_difference},
        )
        email = transfer_confirmation_email(
            booking=booking,
            old_session=old_session,
            new_session=new_session,
            price_difference=price_difference,
            business_name=self._business_name,
        )
        self._notifier.execute(booking.parent_email, email, booking_id=booking.id)
