from __future__ import annotations

import hmac
import time


def sign_payload(payload: bytes, secret: str, timestamp: int | None = None) -> str:
    """Build a `Stripe-Signature` header value (`t=<unix>,v1=<hex hmac-sha256>`) for `payload`."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.".encode("utf-8") + payload
    signature = hmac.new(secret.encode("utf-8"), signed, "sha256").hexdigest()
    return f"t={timestamp},v1={signature}"
