from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone

from clubbooking.application.exceptions import (
    ConcurrentUpdateError,
    InvalidStateError,
    NotFoundError,
    SessionFullError,
)
from clubbooking.application.ports.booking_repository import WriteBatch
from clubbooking.domain.entities.booking import Booking
from clubbooking.domain.entities.session import Session


def apply_batch(
    bookings: dict[str, Booking],
    sessions: dict[str, Session],
    batch: WriteBatch,
    now: datetime | None = None,
) -> tuple[dict[str, Booking], dict[str, Session]]:
    """
    Validate and apply `batch` against the given records without mutating them.

    Returns only the records that changed. Raises before returning anything if
    a single write cannot be applied, so callers can swap the result in whole.
    """
    now = now or datetime.now(timezone.utc)
    changed_bookings: dict[str, Booking] = {}
    changed_sessions: dict[str, Session] = {}

    for update in batch.booking_updates:
        current = changed_bookings.get(update.booking_id) or bookings.get(update.booking_id)
        if current is None:
            raise NotFoundError(f"Booking {update.booking_id} not found")
        if update.expected_status is not None and current.status != update.expected_status:
            raise ConcurrentUpdateError(
                f"Booking {update.booking_id} status changed to {current.status.value} concurrently"
            )
        if update.expected_payment_status is not None and current.payment_status != update.expected_payment_status:
            raise ConcurrentUpdateError(
                f"Booking {update.booking_id} payment status changed to {current.payment_status.value} concurrently"
            )
        if update.expected_session_id is not None and current.session_id != update.expected_session_id:
            raise ConcurrentUpdateError(f"Booking {update.booking_id} was moved to another session concurrently")
        changes = dict(update.changes)
        changes.setdefault("updated_at", now)
        changed_bookings[update.booking_id] = replace(current, **changes)

    for adjustment in batch.enrolment_adjustments:
        current = changed_sessions.get(adjustment.session_id) or sessions.get(adjustment.session_id)
        if current is None:
            raise NotFoundError(f"Session {adjustment.session_id} not found")
        enrolled = current.enrolled + adjustment.delta
        if adjustment.delta > 0 and enrolled > current.capacity:
            raise SessionFullError(f"Session {adjustment.session_id} is full")
        changed_sessions[adjustment.session_id] = replace(current, enrolled=max(0, enrolled), updated_at=now)

    for booking in changed_bookings.values():
        if booking.refunded_amount > booking.amount:
            raise InvalidStateError(f"Booking {booking.id} refunded amount exceeds the booking amount")

    return changed_bookings, changed_sessions
