from __future__ import annotations

from datetime import datetime, timezone

from clubbooking.application.exceptions import NotFoundError, UnauthorizedError
from clubbooking.application.ports.booking_repository import BookingRepositoryPort
from clubbooking.domain.entities.booking import Booking
from clubbooking.domain.entities.session import Session


def load_owned_booking(repository: BookingRepositoryPort, booking_id: str, caller_email: str | None) -> Booking:
    booking = repository.get_booking(booking_id)
    if booking is None:
        raise NotFoundError("Booking not found")
    if not booking.is_owned_by(caller_email):
        raise UnauthorizedError("Unauthorized")
    return booking


def load_session(repository: BookingRepositoryPort, session_id: str | None, label: str = "Session") -> Session:
    session = repository.get_session(session_id) if session_id else None
    if session is None:
        raise NotFoundError(f"{label} not found")
    return session


def utc_now(now: datetime | None = None) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now
