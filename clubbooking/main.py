import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from clubbooking.api.v1.bookings import router as bookings_router
from clubbooking.api.webhooks import router as webhooks_router
from clubbooking.application.exceptions import (
    AuthenticationError,
    BookingError,
    ConcurrentUpdateError,
    ExternalServiceError,
    InvalidStateError,
    NotFoundError,
    PersistenceError,
    RefundPolicyError,
    UnauthorizedError,
)
from clubbooking.core.config import settings

class ContextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        extras = []
        for key in ("booking_id", "session_id", "refund_id", "amount", "subject", "reason", "error"):
            value = getattr(record, key, None)
            if value not in (None, ""):
                extras.append(f"{key}={value}")
        base = super().format(record)
        if extras:
            return f"{base} | " + " ".join(extras)
        return base


handler = logging.StreamHandler()
handler.setFormatter(ContextFormatter("%(levelname)s:%(name)s:%(message)s"))

root = logging.getLogger()
root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
root.handlers.clear()
root.addHandler(handler)

logger = logging.getLogger(__name__)

# Most specific first; the first isinstance match wins.
STATUS_BY_ERROR: tuple[tuple[type[BookingError], int], ...] = (
    (AuthenticationError, 401),
    (UnauthorizedError, 403),
    (NotFoundError, 404),
    (ConcurrentUpdateError, 409),
    (InvalidStateError, 400),
    (ExternalServiceError, 502),
    (PersistenceError, 500),
    (RefundPolicyError, 500),
)


def status_for(error: BookingError) -> int:
    for error_type, status in STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status
    return 500


app = FastAPI(title="Club Booking Portal", version="1.0.0")

app.include_router(bookings_router, prefix="/api/v1/portal/bookings", tags=["bookings"])
app.include_router(webhooks_router, tags=["webhooks"])


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    status = status_for(exc)
    message = str(exc)
    if status >= 500 and not isinstance(exc, ExternalServiceError):
        logger.error("Unhandled booking failure", exc_info=exc, extra={"error": message, "reason": request.url.path})
        message = "Internal server error"
    return JSONResponse(status_code=status, content={"success": False, "error": message})


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
