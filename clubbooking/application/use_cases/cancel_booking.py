from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from clubbooking.application.exceptions import ConcurrentUpdateError, InvalidStateError
from clubbooking.application.ports.booking_repository import BookingRepositoryPort, WriteBatch
from clubbooking.application.ports.payment_gateway import PaymentGatewayPort
from clubbooking.application.use_cases.notify_customer import NotifyCustomerUseCase
from clubbooking.application.utils.effects import attempt
from clubbooking.application.utils.email_templates import cancellation_confirmation_email
from clubbooking.application.utils.guards import load_owned_booking, load_session, utc_now
from clubbooking.application.utils.refund_calculator import calculate_refund, refund_schedule_preview
from clubbooking.domain.entities.booking import Booking, BookingStatus, PaymentStatus
from clubbooking.domain.entities.effect import EffectOutcome
from clubbooking.domain.entities.refund_policy import DEFAULT_REFUND_POLICY, RefundPolicy
from clubbooking.domain.entities.session import Session

DEFAULT_CANCELLATION_REASON = "Self-cancellation via portal"


@dataclass(frozen=True)
class CancellationPreview:
    booking_id: str
    can_cancel: bool
    error: str | None = None
    session_name: str | None = None
    session_date: datetime | None = None
    original_amount: int = 0
    refund_amount: int = 0
    refund_percentage: int = 0
    days_until_session: int = 0
    explanation: str = ""
    policy_name: str = ""
    policy_rules: list[dict[str, int]] = field(default_factory=list)
    schedule: list[dict[str, int]] = field(default_factory=list)


@dataclass(frozen=True)
class CancellationResult:
    booking_id: str
    status: str
    payment_status: str
    refund_amount: int
    refund_percentage: int
    refund_id: str | None
    refund_status: str  # "processed", "failed", "none"
    explanation: str


class CancelBookingUseCase:
    def __init__(
        self,
        repository: BookingRepositoryPort,
        gateway: PaymentGatewayPort,
        notifier: NotifyCustomerUseCase,
        policy: RefundPolicy = DEFAULT_REFUND_POLICY,
        business_name: str = "",
    ) -> None:
        self._repository = repository
        self._gateway = gateway
        self._notifier = notifier
        self._policy = policy
        self._business_name = business_name
        self._logger = logging.getLogger(__name__)

    def preview(self, booking_id: str, caller_email: str | None, now: datetime | None = None) -> CancellationPreview:
        """Report whether the booking can be cancelled and what refund would apply. Writes nothing."""
        now = utc_now(now)
        booking = load_owned_booking(self._repository, booking_id, caller_email)

        if booking.status == BookingStatus.cancelled:
            return CancellationPreview(booking_id=booking.id, can_cancel=False, error="Booking is already cancelled")
        if booking.payment_status == PaymentStatus.refunded:
            return CancellationPreview(
                booking_id=booking.id, can_cancel=False, error="Booking has already been refunded"
            )
        if booking.status != BookingStatus.confirmed:
            return CancellationPreview(
                booking_id=booking.id, can_cancel=False, error="Only confirmed bookings can be cancelled"
            )

        session = load_session(self._repository, booking.session_id)
        if session.start_date <= now:
            return CancellationPreview(
                booking_id=booking.id,
                can_cancel=False,
                error="Cannot cancel a booking for a session that has already started",
                session_name=session.name,
                session_date=session.start_date,
            )

        refundable = booking.amount_paid
        decision = calculate_refund(refundable, session.start_date, now, self._policy)
        return CancellationPreview(
            booking_id=booking.id,
            can_cancel=True,
            session_name=session.name,
            session_date=session.start_date,
            original_amount=booking.amount,
            refund_amount=decision.refund_amount,
            refund_percentage=decision.refund_percentage,
            days_until_session=decision.days_until_session,
            explanation=decision.reason,
            policy_name=self._policy.name,
            policy_rules=[
                {"days_before_session": r.days_before_session, "refund_percentage": r.refund_percentage}
                for r in self._policy.sorted_rules()
            ],
            schedule=refund_schedule_preview(refundable, self._policy),
        )

    def execute(
        self,
        booking_id: str,
        caller_email: str | None,
        reason: str | None = None,
        now: datetime | None = None,
    ) -> CancellationResult:
        now = utc_now(now)
        reason = (reason or "").strip() or DEFAULT_CANCELLATION_REASON
        booking = load_owned_booking(self._repository, booking_id, caller_email)

        if booking.status == BookingStatus.cancelled:
            raise InvalidStateError("Booking is already cancelled")
        if booking.payment_status == PaymentStatus.refunded:
            raise InvalidStateError("Booking has already been refunded")
        if booking.status != BookingStatus.confirmed:
            raise InvalidStateError("Only confirmed bookings can be cancelled")

        session = load_session(self._repository, booking.session_id)
        if session.start_date <= now:
            raise InvalidStateError("Cannot cancel a booking for a session that has already started")

        decision = calculate_refund(booking.amount_paid, session.start_date, now, self._policy)

        refund = self._issue_refund(
            booking,
            amount=decision.refund_amount,
            percentage=decision.refund_percentage,
            days_until_session=decision.days_until_session,
            reason=reason,
        )
        realized_amount = refund.value.amount if refund.succeeded else 0
        refund_id = refund.value.refund_id if refund.succeeded else None

        if realized_amount > 0 and realized_amount >= booking.amount:
            payment_status = PaymentStatus.refunded
        elif realized_amount > 0:
            payment_status = PaymentStatus.partially_refunded
        else:
            payment_status = booking.payment_status

        batch = WriteBatch()
        batch.update_booking(
            booking.id,
            {
                "status": BookingStatus.cancelled,
                "payment_status": payment_status,
                "cancelled_at": now,
                "cancelled_by": "customer",
                "cancellation_reason": reason,
                "refund_amount": realized_amount,
                "refund_percentage": decision.refund_percentage,
                "refund_id": refund_id,
                "refund_explanation": decision.reason,
                "refunded_amount": min(booking.amount, booking.refunded_amount + realized_amount),
            },
            expected_status=booking.status,
            expected_payment_status=booking.payment_status,
        )
        batch.adjust_enrolled(session.id, -1)
        try:
            self._repository.commit(batch)
        except ConcurrentUpdateError as e:
            self._logger.error(
                "Cancellation lost a concurrent update",
                extra={"booking_id": booking.id, "refund_id": refund_id, "error": str(e)},
            )
            raise InvalidStateError("Booking was modified by another request") from e

        self._logger.info(
            "Booking cancelled",
            extra={"booking_id": booking.id, "session_id": session.id, "amount": realized_amount, "refund_id": refund_id},
        )

        self._notify(booking, session, realized_amount, decision.refund_percentage, decision.reason)

        if refund.succeeded:
            refund_status = "processed"
        elif refund.failed:
            refund_status = "failed"
        else:
            refund_status = "none"

        return CancellationResult(
            booking_id=booking.id,
            status=BookingStatus.cancelled.value,
            payment_status=payment_status.value,
            refund_amount=realized_amount,
            refund_percentage=decision.refund_percentage,
            refund_id=refund_id,
            refund_status=refund_status,
            explanation=decision.reason,
        )

    def _issue_refund(
        self,
        booking: Booking,
        amount: int,
        percentage: int,
        days_until_session: int,
        reason: str,
    ) -> EffectOutcome:
        if amount <= 0:
            return EffectOutcome.skip("refund", "no refund due")
        if not booking.payment_intent_id:
            self._logger.warning(
                "Refund due but booking has no charge reference; manual reconciliation required",
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
                    "bookingId": booking.id,
                    "cancellationReason": reason,
                    "refundPercentage": str(percentage),
                    "daysBeforeSession": str(days_until_session),
                },
                idempotency_key=f"cancel-{booking.id}",
            ),
            self._logger,
            booking_id=booking.id,
            amount=amount,
        )
        if outcome.failed:
            self._logger.error(
                "Refund not issued; manual reconciliation required",
                extra={"booking_id": booking.id, "amount": amount},
            )
        return outcome

    def _notify(self, booking: Booking, session: Session, refund_amount: int, percentage: int, explanation: str) -> None:
        email = cancellation_confirmation_email(
            booking=booking,
            session=session,
            refund_amount=refund_amount,
            refund_percentage=percentage,
            refund_explanation=explanation,
            business_name=self._business_name,
        )
        self._notifier.execute(booking.parent_email, email, booking_id=booking.id)
