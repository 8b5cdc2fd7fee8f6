from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from clubbooking.application.use_cases.notify_customer import NotifyCustomerUseCase
from clubbooking.domain.entities.booking import Booking, BookingStatus, PaymentStatus
from clubbooking.domain.entities.session import Session
from clubbooking.infrastructure.email.mock_email import MockEmailSender
from clubbooking.infrastructure.payments.mock_gateway import MockPaymentGateway
from clubbooking.infrastructure.store.memory_store import MemoryBookingRepository

NOW = datetime(2025, 3, 3, 9, 0, tzinfo=timezone.utc)
PARENT_EMAIL = "parent@example.com"


def make_session(session_id: str = "sess_mon", days_ahead: float = 10, **overrides) -> Session:
    values = dict(
        id=session_id,
        name="Monday Multi-Sports",
        start_date=NOW + timedelta(days=days_ahead),
        price=10000,
        capacity=12,
        enrolled=5,
        service_type="after-school",
        location="Main Hall",
        day_of_week=1,
        start_time="15:30",
        end_time="16:30",
    )
    values.update(overrides)
    return Session(**values)


def make_booking(booking_id: str = "bk_1", session_id: str = "sess_mon", **overrides) -> Booking:
    values = dict(
        id=booking_id,
        booking_ref="ABC123",
        session_id=session_id,
        parent_email=PARENT_EMAIL,
        amount=10000,
        status=BookingStatus.confirmed,
        payment_status=PaymentStatus.paid,
        parent_first_name="Sam",
        parent_last_name="Carter",
        child_first_name="Alex",
        child_last_name="Carter",
        payment_intent_id="pi_123",
    )
    values.update(overrides)
    return Booking(**values)


@pytest.fixture
def gateway() -> MockPaymentGateway:
    return MockPaymentGateway()


@pytest.fixture
def email_sender() -> MockEmailSender:
    return MockEmailSender()


@pytest.fixture
def notifier(email_sender: MockEmailSender) -> NotifyCustomerUseCase:
    return NotifyCustomerUseCase(sender=email_sender)


@pytest.fixture
def repository() -> MemoryBookingRepository:
    return MemoryBookingRepository()
