#!/usr/bin/env python3
"""
Seed the local JSON booking store with a few sessions and bookings.

Usage:
  STORE_PROVIDER=json python3 scripts/seed_local.py

Prints a bearer token per parent: with AUTH_TOKEN_SECRET unset the token is
just the parent's email address.
"""

from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from clubbooking.core.config import settings
from clubbooking.domain.entities.booking import Booking, PaymentStatus
from clubbooking.domain.entities.session import Session
from clubbooking.infrastructure.identity.token_verifier import issue_token
from clubbooking.infrastructure.store.json_store import JsonBookingRepository


def main() -> None:
    store = JsonBookingRepository(data_dir=settings.DATA_DIR)
    now = datetime.now(timezone.utc).replace(minute=0, second=0, microsecond=0)

    sessions = [
        Session(
            id="mon-multisport",
            name="Monday Multi-Sports",
            start_date=now + timedelta(days=5),
            price=2000,
            capacity=12,
            enrolled=2,
            location="Main Hall",
            day_of_week=1,
            start_time="15:30",
            end_time="16:30",
        ),
        Session(
            id="wed-football",
            name="Wednesday Football",
            start_date=now + timedelta(days=9),
            price=3500,
            capacity=10,
            enrolled=4,
            location="Sports Field",
            day_of_week=3,
            start_time="15:45",
            end_time="17:00",
        ),
        Session(
            id="fri-gymnastics",
            name="Friday Gymnastics",
            start_date=now + timedelta(days=11),
            price=2000,
            capacity=8,
            enrolled=8,
            location="Gym",
            day_of_week=5,
            start_time="16:00",
            end_time="17:00",
        ),
    ]
    for session in sessions:
        store.save_session(session)

    bookings = [
        Booking(
            id="bk-paid",
            booking_ref="CLB-1001",
            session_id="mon-multisport",
            parent_email="jo@example.com",
            amount=2000,
            payment_status=PaymentStatus.paid,
            parent_first_name="Jo",
            parent_last_name="Smith",
            child_first_name="Mia",
            child_last_name="Smith",
            payment_intent_id="pi_seed_paid",
        ),
        Booking(
            id="bk-deposit",
            booking_ref="CLB-1002",
            session_id="wed-football",
            parent_email="jo@example.com",
            amount=3500,
            payment_status=PaymentStatus.deposit_paid,
            payment_type="deposit",
            deposit_paid=1000,
            balance_due=2500,
            parent_first_name="Jo",
            parent_last_name="Smith",
            child_first_name="Leo",
            child_last_name="Smith",
            payment_intent_id="pi_seed_deposit",
        ),
    ]
    for booking in bookings:
        store.save_booking(booking)

    print(f"Seeded {len(sessions)} sessions and {len(bookings)} bookings into {settings.DATA_DIR}")
    for email in sorted({b.parent_email for b in bookings}):
        token = issue_token(email, settings.AUTH_TOKEN_SECRET) if settings.AUTH_TOKEN_SECRET else email
        print(f"  {email}: Authorization: Bearer {token}")


if __name__ == "__main__":
    main()
