class BookingError(RuntimeError):
    """Base class for errors surfaced to the caller of a booking operation."""

    category = "error"


class AuthenticationError(BookingError):
    """Raised when the caller's identity token is missing or invalid."""

    category = "unauthenticated"


class UnauthorizedError(BookingError):
    """Raised when the caller is not the booking's registered contact."""

    category = "unauthorized"


class NotFoundError(BookingError):
    """Raised when a booking or session id does not resolve."""

    category = "not_found"


class InvalidStateError(BookingError):
    """Raised when the booking or session is not in a state that allows the operation."""

    category = "invalid_state"


class SessionUnavailableError(InvalidStateError):
    """Raised when the target session is full or force-closed."""


class SessionFullError(SessionUnavailableError):
    """Raised by the store when an enrolment increment would exceed capacity."""


class ConcurrentUpdateError(InvalidStateError):
    """Raised by the store when a conditional write finds the record already changed."""


class ExternalServiceError(BookingError):
    """Raised when the payment gateway or email delivery call fails."""

    category = "external_service"


class PaymentGatewayError(ExternalServiceError):
    pass


class EmailDeliveryError(ExternalServiceError):
    pass


class PersistenceError(BookingError):
    """Raised when the storage write itself fails."""

    category = "persistence"


class RefundPolicyError(BookingError):
    """Raised when a refund policy is misconfigured."""

    category = "configuration"
