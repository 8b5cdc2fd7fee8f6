from __future__ import annotations

import base64
import binascii
import hmac
import logging

from clubbooking.application.ports.identity import IdentityVerifierPort


logger = logging.getLogger(__name__)


def issue_token(email: str, secret: str) -> str:
    encoded = base64.urlsafe_b64encode(email.encode("utf-8")).decode("ascii").rstrip("=")
    signature = hmac.new(secret.encode("utf-8"), encoded.encode("ascii"), "sha256").hexdigest()
    return f"{encoded}.{signature}"


class HmacTokenVerifier(IdentityVerifierPort):
    """Verifies `<base64url(email)>.<hex hmac-sha256>` tokens issued by the sign-in service."""

    def __init__(self, secret: str) -> None:
        if not secret:
            raise ValueError("AUTH_TOKEN_SECRET is required for token verification")
        self._secret = secret

    def verify_token(self, token: str) -> str | None:
        if not token.isascii():
            return None
        try:
            encoded, signature = token.rsplit(".", 1)
        except ValueError:
            return None

        expected = hmac.new(self._secret.encode("utf-8"), encoded.encode("ascii"), "sha256").hexdigest()
        if not hmac.compare_digest(expected, signature):
            logger.warning("Token signature mismatch")
            return None

        padding = "=" * (-len(encoded) % 4)
        try:
            return base64.urlsafe_b64decode(encoded + padding).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            return None


class DevTokenVerifier(IdentityVerifierPort):
    """Local development only: the bearer token is the caller's email address."""

    def verify_token(self, token: str) -> str | None:
        token = token.strip()
        return token if "@" in token else None
