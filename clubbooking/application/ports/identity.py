from abc import ABC, abstractmethod


class IdentityVerifierPort(ABC):
    @abstractmethod
    def verify_token(self, token: str) -> str | None:
        """Return the verified email address for `token`, or None if it is not valid."""
        raise NotImplementedError
