from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any

from clubbooking.application.exceptions import NotFoundError
from clubbooking.application.ports.booking_repository import BookingRepositoryPort, WriteBatch
from clubbooking.domain.entities.booking import Booking
from clubbooking.domain.entities.session import Session
from clubbooking.infrastructure.store.batch import apply_batch


class MemoryBookingRepository(BookingRepositoryPort):
    def __init__(self, bookings: list[Booking] | None = None, sessions: list[Session] | None = None) -> None:
        self._bookings: dict[str, Booking] = {b.id: b for b in bookings or []}
        self._sessions: dict[str, Session] = {s.id: s for s in sessions or []}
        self._lock = threading.Lock()

    def get_booking(self, booking_id: str) -> Booking | None:
        return self._bookings.get(booking_id)

    def get_session(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def list_sessions(self) -> list[Session]:
        return list(self._sessions.values())

    def save_booking(self, booking: Booking) -> None:
        with self._lock:
            self._bookings[booking.id] = booking

    def save_session(self, session: Session) -> None:
        with self._lock:
            self._sessions[session.id] = session

    def update_booking(self, booking_id: str, changes: dict[str, Any]) -> Booking:
        with self._lock:
            current = self._bookings.get(booking_id)
            if current is None:
                raise NotFoundError(f"Booking {booking_id} not found")
            updated = replace(current, **{"updated_at": datetime.now(timezone.utc), **changes})
            self._bookings[booking_id] = updated
            return updated

    def commit(self, batch: WriteBatch) -> None:
        if batch.is_empty():
            return
        with self._lock:
            changed_bookings, changed_sessions = apply_batch(self._bookings, self._sessions, batch)
            self._bookings.update(changed_bookings)
            self._sessions.update(changed_sessions)
