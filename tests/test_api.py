"""
HTTP-level tests for the portal and webhook routes.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from clubbooking.application.use_cases.cancel_booking import CancelBookingUseCase
from clubbooking.application.use_cases.complete_checkout import CompleteCheckoutUseCase
from clubbooking.application.use_cases.notify_customer import NotifyCustomerUseCase
from clubbooking.application.use_cases.pay_balance import PayBalanceUseCase
from clubbooking.application.use_cases.transfer_booking import TransferBookingUseCase
from clubbooking.domain.entities.booking import BookingStatus, PaymentStatus
from clubbooking.infrastructure.email.mock_email import MockEmailSender
from clubbooking.infrastructure.identity.token_verifier import DevTokenVerifier, HmacTokenVerifier, issue_token
from clubbooking.infrastructure.payments.mock_gateway import MockPaymentGateway
from clubbooking.infrastructure.payments.webhook_signing import sign_payload
from clubbooking.infrastructure.store.memory_store import MemoryBookingRepository
from clubbooking.main import app
from clubbooking.wiring import dependencies

from conftest import PARENT_EMAIL, make_booking, make_session

WEBHOOK_SECRET = "whsec_test"
AUTH = {"Authorization": f"Bearer {PARENT_EMAIL}"}


def _days_from_now(days: int) -> datetime:
    return datetime.now(timezone.utc) + timedelta(days=days)


@pytest.fixture
def env():
    repository = MemoryBookingRepository(
        bookings=[
            make_booking(session_id="sess_old", amount=2000),
            make_booking(
                "bk_dep",
                session_id="sess_old",
                payment_type="deposit",
                payment_status=PaymentStatus.deposit_paid,
                amount=2000,
                deposit_paid=500,
                balance_due=1500,
            ),
        ],
        sessions=[
            make_session("sess_old", start_date=_days_from_now(10), price=2000, day_of_week=1),
            make_session("sess_new", start_date=_days_from_now(12), price=3500, day_of_week=3),
        ],
    )
    gateway = MockPaymentGateway(webhook_secret=WEBHOOK_SECRET, env="prod")
    notifier = NotifyCustomerUseCase(sender=MockEmailSender())

    overrides = {
        dependencies.get_identity_verifier: lambda: DevTokenVerifier(),
        dependencies.get_payment_gateway: lambda: gateway,
        dependencies.get_cancel_booking_use_case: lambda: CancelBookingUseCase(repository, gateway, notifier),
        dependencies.get_transfer_booking_use_case: lambda: TransferBookingUseCase(
            repository, gateway, notifier, base_url="https://club.example.com"
        ),
        dependencies.get_pay_balance_use_case: lambda: PayBalanceUseCase(
            repository, gateway, base_url="https://club.example.com"
        ),
        dependencies.get_complete_checkout_use_case: lambda: CompleteCheckoutUseCase(repository, notifier),
    }
    app.dependency_overrides.update(overrides)
    yield repository, gateway
    app.dependency_overrides.clear()


@pytest.fixture
def client(env) -> TestClient:
    return TestClient(app)


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_missing_token_is_rejected(client):
    response = client.get("/api/v1/portal/bookings/bk_1/cancel")

    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "Unauthorized"}


def test_other_parent_gets_forbidden(client):
    response = client.get("/api/v1/portal/bookings/bk_1/cancel", headers={"Authorization": "Bearer x@y.com"})

    assert response.status_code == 403


def test_unknown_booking_is_not_found(client):
    response = client.post("/api/v1/portal/bookings/missing/cancel", headers=AUTH)

    assert response.status_code == 404
    assert response.json()["error"] == "Booking not found"


def test_cancel_preview_and_cancel(client, env):
    repository, gateway = env

    preview = client.get("/api/v1/portal/bookings/bk_1/cancel", headers=AUTH)
    assert preview.status_code == 200
    data = preview.json()["data"]
    assert data["canCancel"] is True
    assert data["refundAmount"] == 2000
    assert data["policy"]["rules"][0] == {"daysBeforeSession": 7, "refundPercentage": 100}

    response = client.post("/api/v1/portal/bookings/bk_1/cancel", headers=AUTH, json={"reason": "Holiday"})
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["refundStatus"] == "processed"
    assert body["data"]["paymentStatus"] == "refunded"
    assert repository.get_booking("bk_1").cancellation_reason == "Holiday"

    again = client.post("/api/v1/portal/bookings/bk_1/cancel", headers=AUTH)
    assert again.status_code == 400
    assert again.json() == {"success": False, "error": "Booking is already cancelled"}


def test_transfer_options_and_upgrade(client, env):
    repository, gateway = env

    options = client.get("/api/v1/portal/bookings/bk_1/transfer-options", headers=AUTH)
    assert options.status_code == 200
    sessions = options.json()["data"]["availableSessions"]
    assert [s["id"] for s in sessions] == ["sess_new"]
    assert sessions[0]["priceDifference"] == 1500

    response = client.post(
        "/api/v1/portal/bookings/bk_1/transfer", headers=AUTH, json={"newSessionId": "sess_new"}
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["action"] == "checkout_required"
    assert data["priceDifference"] == 1500
    assert data["checkoutUrl"].startswith("https://checkout.mock/")
    assert "refundAmount" not in data
    assert repository.get_booking("bk_1").session_id == "sess_old"


def test_pay_balance(client, env):
    repository, gateway = env

    details = client.get("/api/v1/portal/bookings/bk_dep/pay-balance", headers=AUTH)
    assert details.json()["data"]["balanceDue"] == 1500

    response = client.post("/api/v1/portal/bookings/bk_dep/pay-balance", headers=AUTH)
    assert response.status_code == 200
    assert response.json()["data"]["amount"] == 1500
    assert gateway.checkouts[-1]["amount"] == 1500


def test_webhook_applies_paid_balance(client, env):
    repository, gateway = env
    payload = json.dumps(
        {
            "id": "evt_1",
            "type": "checkout.session.completed",
            "data": {
                "object": {
                    "id": "cs_1",
                    "payment_status": "paid",
                    "metadata": {"paymentType": "balance", "bookingId": "bk_dep"},
                }
            },
        }
    ).encode("utf-8")

    response = client.post(
        "/webhooks/stripe",
        content=payload,
        headers={"Stripe-Signature": sign_payload(payload, WEBHOOK_SECRET)},
    )

    assert response.status_code == 200
    assert response.json() == {"received": True, "action": "balance_paid"}
    assert repository.get_booking("bk_dep").payment_status == PaymentStatus.paid


def test_webhook_rejects_bad_signature(client, env):
    repository, _ = env

    response = client.post("/webhooks/stripe", content=b"{}", headers={"Stripe-Signature": "t=1,v1=deadbeef"})

    assert response.status_code == 400
    assert repository.get_booking("bk_dep").payment_status == PaymentStatus.deposit_paid


def test_hmac_tokens_round_trip():
    verifier = HmacTokenVerifier("secret")

    assert verifier.verify_token(issue_token(PARENT_EMAIL, "secret")) == PARENT_EMAIL
    assert verifier.verify_token(issue_token(PARENT_EMAIL, "other")) is None
    assert verifier.verify_token("garbage") is None


def test_cancelled_booking_status_in_store(client, env):
    repository, _ = env
    client.post("/api/v1/portal/bookings/bk_1/cancel", headers=AUTH)

    assert repository.get_booking("bk_1").status == BookingStatus.cancelled
    assert repository.get_session("sess_old").enrolled == 4
