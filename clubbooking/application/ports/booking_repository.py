from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from clubbooking.domain.entities.booking import Booking, BookingStatus, PaymentStatus
from clubbooking.domain.entities.session import Session


@dataclass(frozen=True)
class BookingUpdate:
    booking_id: str
    changes: dict[str, Any]
    expected_status: BookingStatus | None = None
    expected_payment_status: PaymentStatus | None = None
    expected_session_id: str | None = None


@dataclass(frozen=True)
class EnrolmentAdjustment:
    session_id: str
    delta: int  # -1 or +1


@dataclass
class WriteBatch:
    """
    A set of writes committed all-or-nothing by BookingRepositoryPort.commit.

    Booking updates may carry expectations on the persisted record; if any of
    them no longer holds, nothing in the batch is applied.
    """

    booking_updates: list[BookingUpdate] = field(default_factory=list)
    enrolment_adjustments: list[EnrolmentAdjustment] = field(default_factory=list)

    def update_booking(
        self,
        booking_id: str,
        changes: dict[str, Any],
        expected_status: BookingStatus | None = None,
        expected_payment_status: PaymentStatus | None = None,
        expected_session_id: str | None = None,
    ) -> "WriteBatch":
        self.booking_updates.append(
            BookingUpdate(
                booking_id=booking_id,
                changes=dict(changes),
                expected_status=expected_status,
                expected_payment_status=expected_payment_status,
                expected_session_id=expected_session_id,
            )
        )
        return self

    def adjust_enrolled(self, session_id: str, delta: int) -> "WriteBatch":
        if delta not in (-1, 1):
            raise ValueError("Enrolment can only move by one seat per booking operation")
        self.enrolment_adjustments.append(EnrolmentAdjustment(session_id=session_id, delta=delta))
        return self

    def is_empty(self) -> bool:
        return not self.booking_updates and not self.enrolment_adjustments


class BookingRepositoryPort(ABC):
    @abstractmethod
    def get_booking(self, booking_id: str) -> Booking | None:
        raise NotImplementedError

    @abstractmethod
    def get_session(self, session_id: str) -> Session | None:
        raise NotImplementedError

    @abstractmethod
    def list_sessions(self) -> list[Session]:
        raise NotImplementedError

    @abstractmethod
    def save_booking(self, booking: Booking) -> None:
        """Insert or replace a booking. Used by checkout completion and seeding."""
        raise NotImplementedError

    @abstractmethod
    def save_session(self, session: Session) -> None:
        raise NotImplementedError

    @abstractmethod
    def update_booking(self, booking_id: str, changes: dict[str, Any]) -> Booking:
        """Apply a single unconditional write to one booking. Returns the updated booking."""
        raise NotImplementedError

    @abstractmethod
    def commit(self, batch: WriteBatch) -> None:
        """
        Apply every write in `batch` as one unit.

        Raises NotFoundError for unknown ids, ConcurrentUpdateError when an
        expectation fails, SessionFullError when an increment would exceed
        capacity, PersistenceError when storage itself fails. Nothing is
        applied in any of those cases.
        """
        raise NotImplementedError
