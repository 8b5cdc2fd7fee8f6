from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class BookingStatus(str, Enum):
    confirmed = "confirmed"
    cancelled = "cancelled"
    waitlist = "waitlist"


class PaymentStatus(str, Enum):
    pending = "pending"
    deposit_paid = "deposit_paid"
    paid = "paid"
    partially_refunded = "partially_refunded"
    refunded = "refunded"
    failed = "failed"
    expired = "expired"


@dataclass(frozen=True)
class Booking:
    id: str
    booking_ref: str
    session_id: str
    parent_email: str
    amount: int  # pence
    status: BookingStatus = BookingStatus.confirmed
    payment_status: PaymentStatus = PaymentStatus.pending
    payment_type: str = "full"  # "full", "deposit"
    parent_first_name: str = ""
    parent_last_name: str = ""
    child_first_name: str = ""
    child_last_name: str = ""
    deposit_paid: int = 0
    balance_due: int = 0
    refunded_amount: int = 0
    transfer_price_difference: int = 0
    payment_intent_id: str | None = None  # charge reference at the gateway
    balance_checkout_id: str | None = None
    balance_paid_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancelled_by: str | None = None
    cancellation_reason: str | None = None
    refund_amount: int | None = None
    refund_percentage: int | None = None
    refund_id: str | None = None
    refund_explanation: str | None = None
    transferred_from: str | None = None
    transferred_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def parent_name(self) -> str:
        return f"{self.parent_first_name} {self.parent_last_name}".strip()

    @property
    def child_name(self) -> str:
        return f"{self.child_first_name} {self.child_last_name}".strip()

    @property
    def amount_paid(self) -> int:
        """Amount actually collected: the deposit while the balance is outstanding."""
        if self.payment_type == "deposit" and self.deposit_paid and not self.balance_paid_at:
            return self.deposit_paid
        if self.payment_status == PaymentStatus.deposit_paid and self.deposit_paid:
            return self.deposit_paid
        return self.amount

    @property
    def outstanding_balance(self) -> int:
        return self.amount - self.deposit_paid

    def is_owned_by(self, email: str | None) -> bool:
        if not email or not self.parent_email:
            return False
        return self.parent_email.strip().lower() == email.strip().lower()
