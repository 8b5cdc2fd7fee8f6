"""
Tests for customer self-cancellation.
"""

from __future__ import annotations

from dataclasses import replace

import pytest

from clubbooking.application.exceptions import InvalidStateError, NotFoundError, UnauthorizedError
from clubbooking.application.use_cases.cancel_booking import CancelBookingUseCase
from clubbooking.application.use_cases.notify_customer import NotifyCustomerUseCase
from clubbooking.domain.entities.booking import BookingStatus, PaymentStatus
from clubbooking.infrastructure.email.mock_email import MockEmailSender
from clubbooking.infrastructure.payments.mock_gateway import MockPaymentGateway
from clubbooking.infrastructure.store.memory_store import MemoryBookingRepository

from conftest import NOW, PARENT_EMAIL, make_booking, make_session


def _use_case(repository, gateway, notifier) -> CancelBookingUseCase:
    return CancelBookingUseCase(repository=repository, gateway=gateway, notifier=notifier, business_name="Test Club")


def test_cancel_five_days_out_refunds_half(gateway, notifier, email_sender):
    repository = MemoryBookingRepository(
        bookings=[make_booking()],
        sessions=[make_session(days_ahead=5)],
    )

    result = _use_case(repository, gateway, notifier).execute("bk_1", PARENT_EMAIL, reason="Moving away", now=NOW)

    assert result.refund_amount == 5000
    assert result.refund_percentage == 50
    assert result.refund_status == "processed"
    assert result.payment_status == "partially_refunded"

    booking = repository.get_booking("bk_1")
    assert booking.status == BookingStatus.cancelled
    assert booking.payment_status == PaymentStatus.partially_refunded
    assert booking.refund_amount == 5000
    assert booking.refunded_amount == 5000
    assert booking.refund_id == result.refund_id
    assert booking.cancellation_reason == "Moving away"
    assert booking.cancelled_by == "customer"
    assert booking.cancelled_at == NOW

    assert repository.get_session("sess_mon").enrolled == 4

    assert len(gateway.refunds) == 1
    refund = gateway.refunds[0]
    assert refund["charge_id"] == "pi_123"
    assert refund["amount"] == 5000
    assert refund["metadata"]["bookingId"] == "bk_1"
    assert refund["metadata"]["refundPercentage"] == "50"

    assert len(email_sender.sent) == 1
    assert email_sender.sent[0]["to"] == PARENT_EMAIL


def test_cancel_one_day_out_keeps_payment_status(gateway, notifier):
    repository = MemoryBookingRepository(bookings=[make_booking()], sessions=[make_session(days_ahead=1)])

    result = _use_case(repository, gateway, notifier).execute("bk_1", PARENT_EMAIL, now=NOW)

    assert result.refund_amount == 0
    assert result.refund_status == "none"
    booking = repository.get_booking("bk_1")
    assert booking.status == BookingStatus.cancelled
    assert booking.payment_status == PaymentStatus.paid
    assert booking.cancellation_reason == "Self-cancellation via portal"
    assert gateway.refunds == []
    assert repository.get_session("sess_mon").enrolled == 4


def test_full_refund_marks_booking_refunded(gateway, notifier):
    repository = MemoryBookingRepository(bookings=[make_booking()], sessions=[make_session(days_ahead=10)])

    result = _use_case(repository, gateway, notifier).execute("bk_1", PARENT_EMAIL, now=NOW)

    assert result.refund_amount == 10000
    assert repository.get_booking("bk_1").payment_status == PaymentStatus.refunded


def test_session_already_started_is_rejected(gateway, notifier):
    repository = MemoryBookingRepository(bookings=[make_booking()], sessions=[make_session(days_ahead=-1)])
    before = repository.get_booking("bk_1")

    with pytest.raises(InvalidStateError):
        _use_case(repository, gateway, notifier).execute("bk_1", PARENT_EMAIL, now=NOW)

    assert repository.get_booking("bk_1") == before
    assert repository.get_session("sess_mon").enrolled == 5
    assert gateway.refunds == []


def test_second_cancel_is_rejected(gateway, notifier):
    repository = MemoryBookingRepository(bookings=[make_booking()], sessions=[make_session(days_ahead=5)])
    use_case = _use_case(repository, gateway, notifier)

    use_case.execute("bk_1", PARENT_EMAIL, now=NOW)
    with pytest.raises(InvalidStateError):
        use_case.execute("bk_1", PARENT_EMAIL, now=NOW)

    assert len(gateway.refunds) == 1
    assert repository.get_session("sess_mon").enrolled == 4


def test_gateway_failure_still_cancels(notifier):
    gateway = MockPaymentGateway(fail_refunds=True)
    repository = MemoryBookingRepository(bookings=[make_booking()], sessions=[make_session(days_ahead=10)])

    result = _use_case(repository, gateway, notifier).execute("bk_1", PARENT_EMAIL, now=NOW)

    assert result.refund_status == "failed"
    assert result.refund_amount == 0
    assert result.refund_id is None
    booking = repository.get_booking("bk_1")
    assert booking.status == BookingStatus.cancelled
    assert booking.payment_status == PaymentStatus.paid
    assert booking.refund_amount == 0
    assert repository.get_session("sess_mon").enrolled == 4


def test_email_failure_does_not_fail_cancellation(gateway):
    notifier = NotifyCustomerUseCase(sender=MockEmailSender(fail=True))
    repository = MemoryBookingRepository(bookings=[make_booking()], sessions=[make_session(days_ahead=5)])

    result = _use_case(repository, gateway, notifier).execute("bk_1", PARENT_EMAIL, now=NOW)

    assert result.status == "cancelled"
    assert repository.get_booking("bk_1").status == BookingStatus.cancelled


def test_deposit_booking_refunds_from_deposit(gateway, notifier):
    booking = make_booking(
        payment_type="deposit",
        payment_status=PaymentStatus.deposit_paid,
        deposit_paid=3000,
        balance_due=7000,
    )
    repository = MemoryBookingRepository(bookings=[booking], sessions=[make_session(days_ahead=10)])

    result = _use_case(repository, gateway, notifier).execute("bk_1", PARENT_EMAIL, now=NOW)

    assert result.refund_amount == 3000
    assert repository.get_booking("bk_1").payment_status == PaymentStatus.partially_refunded


def test_enrolled_never_goes_negative(gateway, notifier):
    repository = MemoryBookingRepository(bookings=[make_booking()], sessions=[make_session(days_ahead=5, enrolled=0)])

    _use_case(repository, gateway, notifier).execute("bk_1", PARENT_EMAIL, now=NOW)

    assert repository.get_session("sess_mon").enrolled == 0


def test_other_parent_cannot_cancel(gateway, notifier):
    repository = MemoryBookingRepository(bookings=[make_booking()], sessions=[make_session(days_ahead=5)])

    with pytest.raises(UnauthorizedError):
        _use_case(repository, gateway, notifier).execute("bk_1", "someone@else.com", now=NOW)


def test_email_match_ignores_case(gateway, notifier):
    repository = MemoryBookingRepository(bookings=[make_booking()], sessions=[make_session(days_ahead=5)])

    result = _use_case(repository, gateway, notifier).execute("bk_1", "Parent@Example.COM", now=NOW)

    assert result.status == "cancelled"


def test_unknown_booking(gateway, notifier):
    repository = MemoryBookingRepository(sessions=[make_session()])

    with pytest.raises(NotFoundError):
        _use_case(repository, gateway, notifier).execute("missing", PARENT_EMAIL, now=NOW)


def test_waitlist_booking_cannot_be_cancelled(gateway, notifier):
    repository = MemoryBookingRepository(
        bookings=[make_booking(status=BookingStatus.waitlist)],
        sessions=[make_session(days_ahead=5)],
    )

    with pytest.raises(InvalidStateError, match="Only confirmed bookings"):
        _use_case(repository, gateway, notifier).execute("bk_1", PARENT_EMAIL, now=NOW)


def test_preview_reports_refund_without_writing(gateway, notifier):
    repository = MemoryBookingRepository(bookings=[make_booking()], sessions=[make_session(days_ahead=5)])

    preview = _use_case(repository, gateway, notifier).preview("bk_1", PARENT_EMAIL, now=NOW)

    assert preview.can_cancel is True
    assert preview.refund_amount == 5000
    assert preview.days_until_session == 5
    assert preview.policy_name == "Standard Refund Policy"
    assert [entry["refund_amount"] for entry in preview.schedule] == [10000, 5000, 0]
    assert repository.get_booking("bk_1").status == BookingStatus.confirmed
    assert gateway.refunds == []


def test_preview_of_cancelled_booking(gateway, notifier):
    repository = MemoryBookingRepository(
        bookings=[make_booking(status=BookingStatus.cancelled)],
        sessions=[make_session(days_ahead=5)],
    )

    preview = _use_case(repository, gateway, notifier).preview("bk_1", PARENT_EMAIL, now=NOW)

    assert preview.can_cancel is False
    assert preview.error == "Booking is already cancelled"


class CancelledElsewhereRepository(MemoryBookingRepository):
    """A second request cancels the booking after this one has read it."""

    def commit(self, batch):
        booking = self.get_booking("bk_1")
        self.save_booking(replace(booking, status=BookingStatus.cancelled, cancellation_reason="Other tab"))
        super().commit(batch)


def test_lost_race_writes_nothing(gateway, notifier, email_sender):
    repository = CancelledElsewhereRepository(bookings=[make_booking()], sessions=[make_session(days_ahead=5)])

    with pytest.raises(InvalidStateError, match="modified by another request"):
        _use_case(repository, gateway, notifier).execute("bk_1", PARENT_EMAIL, now=NOW)

    booking = repository.get_booking("bk_1")
    assert booking.cancellation_reason == "Other tab"
    assert booking.refund_amount is None
    assert booking.payment_status == PaymentStatus.paid
    assert repository.get_session("sess_mon").enrolled == 5
    assert email_sender.sent == []
    # refund went out under the per-booking key, so the winning request cannot repeat it
    assert len(gateway.refunds) == 1
