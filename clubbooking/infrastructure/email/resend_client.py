from __future__ import annotations

import logging
import re

import httpx

from clubbooking.application.exceptions import EmailDeliveryError
from clubbooking.application.ports.email_sender import EmailSenderPort


class ResendEmailSender(EmailSenderPort):
    def __init__(self, api_key: str, from_email: str, base_url: str, timeout: float = 10.0) -> None:
        self._api_key = api_key
        self._from_email = from_email
        self._base_url = base_url.rstrip("/")
        self._client = httpx.Client(timeout=timeout)
        self._logger = logging.getLogger(__name__)

    def send(self, to: str, subject: str, html: str, text: str | None = None) -> str:
        payload = {
            "from": self._from_email,
            "to": to,
            "subject": subject,
            "html": html,
            "text": text or strip_html(html),
        }
        headers = {"Authorization": f"Bearer {self._api_key}"}
        try:
            resp = self._client.post(f"{self._base_url}/emails", json=payload, headers=headers)
        except httpx.HTTPError as e:
            self._logger.error("Resend request failed", extra={"error": str(e)})
            raise EmailDeliveryError(f"Email request failed: {e}") from e

        if resp.status_code >= 400:
            try:
                error_message = resp.json().get("message")
            except ValueError:
                error_message = resp.text
            self._logger.error(
                "Resend send failed",
                extra={"status": resp.status_code, "error": error_message, "subject": subject},
            )
            raise EmailDeliveryError(f"Email send failed ({resp.status_code}): {error_message}")

        try:
            body = resp.json()
        except ValueError:
            # accepted for delivery, just no id to record
            self._logger.warning("Resend returned a non-JSON success body", extra={"subject": subject})
            return ""
        return str(body.get("id", "")) if isinstance(body, dict) else ""


def strip_html(html: str) -> str:
    text = re.sub(r"<br\s*/?>", "\n", html, flags=re.IGNORECASE)
    text = re.sub(r"</p>", "\n\n", text, flags=re.IGNORECASE)
    text = re.sub(r"<[^>]+>", "", text)
    return (
        text.replace("&nbsp;", " ")
        .replace("&middot;", "-")
        .replace("&amp;", "&")
        .replace("&lt;", "<")
        .replace("&gt;", ">")
        .strip()
    )
