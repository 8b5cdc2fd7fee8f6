from abc import ABC, abstractmethod


class EmailSenderPort(ABC):
    @abstractmethod
    def send(self, to: str, subject: str, html: str, text: str | None = None) -> str:
        """Send one email. Returns the provider's message id; raises EmailDeliveryError on failure."""
        raise NotImplementedError
