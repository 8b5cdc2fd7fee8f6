from __future__ import annotations

from fastapi import Depends, Header

from clubbooking.application.exceptions import AuthenticationError
from clubbooking.application.ports.identity import IdentityVerifierPort
from clubbooking.wiring.dependencies import get_identity_verifier


def get_caller_email(
    authorization: str | None = Header(None),
    verifier: IdentityVerifierPort = Depends(get_identity_verifier),
) -> str:
    token = (authorization or "").removeprefix("Bearer ").strip()
    if not token:
        raise AuthenticationError("Unauthorized")
    email = verifier.verify_token(token)
    if not email:
        raise AuthenticationError("Unauthorized")
    return email
