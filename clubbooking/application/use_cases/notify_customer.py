from __future__ import annotations

import logging

from clubbooking.application.ports.email_sender import EmailSenderPort
from clubbooking.application.utils.effects import attempt
from clubbooking.application.utils.email_templates import RenderedEmail
from clubbooking.domain.entities.effect import EffectOutcome


class NotifyCustomerUseCase:
    def __init__(self, sender: EmailSenderPort, enabled: bool = True) -> None:
        self._sender = sender
        self._enabled = enabled
        self._logger = logging.getLogger(__name__)

    def execute(self, to: str, email: RenderedEmail, booking_id: str | None = None) -> EffectOutcome:
        """Send a customer email. Delivery failures come back as a failed outcome, never as an exception."""
        if not self._enabled:
            self._logger.info("WOULD_SEND_EMAIL", extra={"booking_id": booking_id, "subject": email.subject})
            return EffectOutcome.skip("email", "notifications disabled")
        if not to:
            self._logger.warning("No recipient for customer email", extra={"booking_id": booking_id})
            return EffectOutcome.skip("email", "missing recipient")

        outcome = attempt(
            "email",
            lambda: self._sender.send(to=to, subject=email.subject, html=email.html),
            self._logger,
            booking_id=booking_id,
        )
        if outcome.succeeded:
            self._logger.info("Customer email sent", extra={"booking_id": booking_id, "subject": email.subject})
        return outcome
