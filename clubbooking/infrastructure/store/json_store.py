from __future__ import annotations

import json
import logging
import threading
from dataclasses import asdict, fields, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from clubbooking.application.exceptions import NotFoundError, PersistenceError
from clubbooking.application.ports.booking_repository import BookingRepositoryPort, WriteBatch
from clubbooking.domain.entities.booking import Booking, BookingStatus, PaymentStatus
from clubbooking.domain.entities.session import Session
from clubbooking.infrastructure.store.batch import apply_batch

_BOOKING_DATETIME_FIELDS = ("balance_paid_at", "cancelled_at", "transferred_at", "updated_at")
_SESSION_DATETIME_FIELDS = ("start_date", "updated_at")


class JsonBookingRepository(BookingRepositoryPort):
    """
    Document store backed by a single JSON file.

    Every write loads the file, applies the change in memory, writes a temp
    file and renames it over the original, so a batch is either fully on disk
    or not at all.
    """

    def __init__(self, data_dir: str = "./data", filename: str = "bookings.json") -> None:
        self._data_dir = Path(data_dir)
        self._data_dir.mkdir(parents=True, exist_ok=True)
        self._file_path = self._data_dir / filename
        self._lock = threading.Lock()
        self._logger = logging.getLogger(__name__)

    def get_booking(self, booking_id: str) -> Booking | None:
        bookings, _ = self._load()
        return bookings.get(booking_id)

    def get_session(self, session_id: str) -> Session | None:
        _, sessions = self._load()
        return sessions.get(session_id)

    def list_sessions(self) -> list[Session]:
        _, sessions = self._load()
        return list(sessions.values())

    def save_booking(self, booking: Booking) -> None:
        with self._lock:
            bookings, sessions = self._load()
            bookings[booking.id] = booking
            self._save(bookings, sessions)

    def save_session(self, session: Session) -> None:
        with self._lock:
            bookings, sessions = self._load()
            sessions[session.id] = session
            self._save(bookings, sessions)

    def update_booking(self, booking_id: str, changes: dict[str, Any]) -> Booking:
        with self._lock:
            bookings, sessions = self._load()
            current = bookings.get(booking_id)
            if current is None:
                raise NotFoundError(f"Booking {booking_id} not found")
            updated = replace(current, **{"updated_at": datetime.now(timezone.utc), **changes})
            bookings[booking_id] = updated
            self._save(bookings, sessions)
            return updated

    def commit(self, batch: WriteBatch) -> None:
        if batch.is_empty():
            return
        with self._lock:
            bookings, sessions = self._load()
            changed_bookings, changed_sessions = apply_batch(bookings, sessions, batch)
            bookings.update(changed_bookings)
            sessions.update(changed_sessions)
            self._save(bookings, sessions)

    def _load(self) -> tuple[dict[str, Booking], dict[str, Session]]:
        if not self._file_path.exists():
            return {}, {}
        try:
            with open(self._file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            self._logger.error("Failed to read booking store", extra={"error": str(e)})
            raise PersistenceError("Booking store is unreadable") from e

        bookings = {
            key: self._deserialize_booking(value) for key, value in (data.get("bookings") or {}).items()
        }
        sessions = {
            key: self._deserialize_session(value) for key, value in (data.get("sessions") or {}).items()
        }
        return bookings, sessions

    def _save(self, bookings: dict[str, Booking], sessions: dict[str, Session]) -> None:
        data = {
            "version": 1,
            "bookings": {key: self._serialize_booking(b) for key, b in bookings.items()},
            "sessions": {key: self._serialize_session(s) for key, s in sessions.items()},
        }
        temp_path = self._file_path.with_suffix(".json.tmp")
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            temp_path.replace(self._file_path)
        except OSError as e:
            if temp_path.exists():
                temp_path.unlink(missing_ok=True)
            self._logger.error("Failed to write booking store", extra={"error": str(e)})
            raise PersistenceError("Failed to write booking store") from e

    def _serialize_booking(self, booking: Booking) -> dict[str, Any]:
        result = asdict(booking)
        result["status"] = booking.status.value
        result["payment_status"] = booking.payment_status.value
        for name in _BOOKING_DATETIME_FIELDS:
            result[name] = _to_iso(getattr(booking, name))
        return result

    def _deserialize_booking(self, data: dict[str, Any]) -> Booking:
        known = {f.name for f in fields(Booking)}
        values = {key: value for key, value in data.items() if key in known}
        values["status"] = BookingStatus(values.get("status", BookingStatus.confirmed.value))
        values["payment_status"] = PaymentStatus(values.get("payment_status", PaymentStatus.pending.value))
        for name in _BOOKING_DATETIME_FIELDS:
            values[name] = _from_iso(values.get(name))
        return Booking(**values)

    def _serialize_session(self, session: Session) -> dict[str, Any]:
        result = asdict(session)
        for name in _SESSION_DATETIME_FIELDS:
            result[name] = _to_iso(getattr(session, name))
        return result

    def _deserialize_session(self, data: dict[str, Any]) -> Session:
        known = {f.name for f in fields(Session)}
        values = {key: value for key, value in data.items() if key in known}
        for name in _SESSION_DATETIME_FIELDS:
            values[name] = _from_iso(values.get(name))
        return Session(**values)


def _to_iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _from_iso(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
