from __future__ import annotations

import logging
from typing import Any

from clubbooking.application.exceptions import EmailDeliveryError
from clubbooking.application.ports.email_sender import EmailSenderPort


class MockEmailSender(EmailSenderPort):
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.sent: list[dict[str, Any]] = []
        self._logger = logging.getLogger(__name__)

    def send(self, to: str, subject: str, html: str, text: str | None = None) -> str:
        if self.fail:
            raise EmailDeliveryError("Mock email failure")
        message_id = f"mock_email_{len(self.sent) + 1}"
        self.sent.append({"id": message_id, "to": to, "subject": subject, "html": html})
        self._logger.info("Mock email sent", extra={"subject": subject})
        return message_id
