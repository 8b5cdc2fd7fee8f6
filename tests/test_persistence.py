"""
Tests for the durable booking store and its all-or-nothing batch writes.
"""

from __future__ import annotations

import json
import tempfile
from pathlib import Path

import pytest

from clubbooking.application.exceptions import (
    ConcurrentUpdateError,
    NotFoundError,
    PersistenceError,
    SessionFullError,
)
from clubbooking.application.ports.booking_repository import WriteBatch
from clubbooking.domain.entities.booking import BookingStatus, PaymentStatus
from clubbooking.infrastructure.store.json_store import JsonBookingRepository
from clubbooking.infrastructure.store.memory_store import MemoryBookingRepository

from conftest import NOW, make_booking, make_session


def test_json_store_persistence():
    """Bookings and sessions survive a new store instance over the same file."""
    with tempfile.TemporaryDirectory() as tmpdir:
        store = JsonBookingRepository(data_dir=tmpdir)
        store.save_session(make_session())
        store.save_booking(make_booking(balance_paid_at=NOW))

        reopened = JsonBookingRepository(data_dir=tmpdir)
        booking = reopened.get_booking("bk_1")
        session = reopened.get_session("sess_mon")

        assert booking == make_booking(balance_paid_at=NOW)
        assert booking.status == BookingStatus.confirmed
        assert booking.payment_status == PaymentStatus.paid
        assert session == make_session()


def test_batch_applies_booking_and_counters_together():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = JsonBookingRepository(data_dir=tmpdir)
        store.save_session(make_session("sess_a", enrolled=5))
        store.save_session(make_session("sess_b", enrolled=2))
        store.save_booking(make_booking(session_id="sess_a"))

        batch = WriteBatch()
        batch.update_booking("bk_1", {"session_id": "sess_b"}, expected_session_id="sess_a")
        batch.adjust_enrolled("sess_a", -1)
        batch.adjust_enrolled("sess_b", 1)
        store.commit(batch)

        reopened = JsonBookingRepository(data_dir=tmpdir)
        assert reopened.get_booking("bk_1").session_id == "sess_b"
        assert reopened.get_booking("bk_1").updated_at is not None
        assert reopened.get_session("sess_a").enrolled == 4
        assert reopened.get_session("sess_b").enrolled == 3


def test_failed_expectation_writes_nothing():
    """A stale read must not overwrite a booking that has since been cancelled."""
    with tempfile.TemporaryDirectory() as tmpdir:
        store = JsonBookingRepository(data_dir=tmpdir)
        store.save_session(make_session(enrolled=5))
        store.save_booking(make_booking(status=BookingStatus.cancelled))
        before = Path(tmpdir, "bookings.json").read_text(encoding="utf-8")

        batch = WriteBatch()
        batch.update_booking("bk_1", {"status": BookingStatus.cancelled}, expected_status=BookingStatus.confirmed)
        batch.adjust_enrolled("sess_mon", -1)

        with pytest.raises(ConcurrentUpdateError):
            store.commit(batch)

        assert Path(tmpdir, "bookings.json").read_text(encoding="utf-8") == before
        assert store.get_session("sess_mon").enrolled == 5


def test_increment_past_capacity_writes_nothing():
    store = MemoryBookingRepository(
        bookings=[make_booking(session_id="sess_a")],
        sessions=[make_session("sess_a", enrolled=4), make_session("sess_b", capacity=6, enrolled=6)],
    )

    batch = WriteBatch()
    batch.update_booking("bk_1", {"session_id": "sess_b"})
    batch.adjust_enrolled("sess_a", -1)
    batch.adjust_enrolled("sess_b", 1)

    with pytest.raises(SessionFullError):
        store.commit(batch)

    assert store.get_booking("bk_1").session_id == "sess_a"
    assert store.get_session("sess_a").enrolled == 4
    assert store.get_session("sess_b").enrolled == 6


def test_unknown_session_in_batch():
    store = MemoryBookingRepository(bookings=[make_booking()])

    batch = WriteBatch().adjust_enrolled("nope", -1)

    with pytest.raises(NotFoundError):
        store.commit(batch)


def test_enrolment_moves_one_seat_at_a_time():
    with pytest.raises(ValueError):
        WriteBatch().adjust_enrolled("sess_mon", 2)


def test_corrupt_store_file_raises_persistence_error():
    with tempfile.TemporaryDirectory() as tmpdir:
        Path(tmpdir, "bookings.json").write_text("{not json", encoding="utf-8")
        store = JsonBookingRepository(data_dir=tmpdir)

        with pytest.raises(PersistenceError):
            store.get_booking("bk_1")


def test_store_file_layout():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = JsonBookingRepository(data_dir=tmpdir)
        store.save_booking(make_booking())

        data = json.loads(Path(tmpdir, "bookings.json").read_text(encoding="utf-8"))
        assert data["version"] == 1
        assert data["bookings"]["bk_1"]["status"] == "confirmed"
        assert data["bookings"]["bk_1"]["payment_status"] == "paid"
        assert data["sessions"] == {}
