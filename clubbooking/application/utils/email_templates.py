from __future__ import annotations

from dataclasses import dataclass
from html import escape

from clubbooking.application.utils.refund_calculator import format_price
from clubbooking.domain.entities.booking import Booking
from clubbooking.domain.entities.session import Session


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    html: str


def _wrap(title: str, body: str, business_name: str) -> str:
    return (
        "<!DOCTYPE html><html><body style=\"font-family: Arial, sans-serif; color: #1f2937;\">"
        f"<h2>{escape(title)}</h2>"
        f"{body}"
        f"<p style=\"color: #6b7280; font-size: 12px;\">{escape(business_name)}</p>"
        "</body></html>"
    )


def _session_line(session: Session) -> str:
    parts = [escape(session.name)]
    if session.start_time:
        time_range = session.start_time + (f"-{session.end_time}" if session.end_time else "")
        parts.append(f"{session.day_name}s {escape(time_range)}")
    if session.location:
        parts.append(escape(session.location))
    parts.append(format_price(session.price))
    return " &middot; ".join(parts)


def cancellation_confirmation_email(
    booking: Booking,
    session: Session,
    refund_amount: int,
    refund_percentage: int,
    refund_explanation: str,
    business_name: str,
) -> RenderedEmail:
    if refund_amount > 0:
        refund_html = (
            f"<p>A refund of <strong>{format_price(refund_amount)}</strong> ({refund_percentage}%) "
            "has been issued to your original payment method. "
            "It can take 5-10 working days to appear.</p>"
        )
    else:
        refund_html = "<p>No refund is due for this cancellation.</p>"

    body = (
        f"<p>Hi {escape(booking.parent_name or 'there')},</p>"
        f"<p>The booking for <strong>{escape(booking.child_name)}</strong> "
        f"on <strong>{escape(session.name)}</strong> "
        f"({session.start_date.strftime('%A %d %B %Y')}) has been cancelled.</p>"
        f"{refund_html}"
        f"<p><em>{escape(refund_explanation)}</em></p>"
        f"<p>Booking reference: {escape(booking.booking_ref)}</p>"
    )
    return RenderedEmail(
        subject=f"Booking Cancellation Confirmed - {session.name}",
        html=_wrap("Booking cancelled", body, business_name),
    )


def transfer_confirmation_email(
    booking: Booking,
    old_session: Session,
    new_session: Session,
    price_difference: int,
    business_name: str,
) -> RenderedEmail:
    if price_difference > 0:
        difference_html = f"<p>Price difference: {format_price(price_difference)} charged.</p>"
    elif price_difference < 0:
        difference_html = f"<p>Price difference: {format_price(abs(price_difference))} refunded.</p>"
    else:
        difference_html = "<p>No payment adjustment was needed.</p>"

    body = (
        f"<p>Hi {escape(booking.parent_first_name or 'there')},</p>"
        f"<p>{escape(booking.child_first_name or 'Your child')} has been moved to a new session.</p>"
        f"<p><strong>From:</strong> {_session_line(old_session)}<br>"
        f"<strong>To:</strong> {_session_line(new_session)}</p>"
        f"{difference_html}"
        f"<p>Booking reference: {escape(booking.booking_ref)}</p>"
    )
    return RenderedEmail(
        subject=f"Session Transfer Confirmed - {booking.booking_ref}",
        html=_wrap("Session transfer confirmed", body, business_name),
    )


def balance_paid_confirmation_email(
    booking: Booking,
    session: Session | None,
    amount_paid: int,
    business_name: str,
) -> RenderedEmail:
    session_html = f"<p>Session: {_session_line(session)}</p>" if session else ""
    body = (
        f"<p>Hi {escape(booking.parent_first_name or 'there')},</p>"
        f"<p>We have received your balance payment of <strong>{format_price(amount_paid)}</strong>. "
        f"Booking {escape(booking.booking_ref)} is now fully paid.</p>"
        f"{session_html}"
    )
    return RenderedEmail(
        subject=f"Balance Paid - {booking.booking_ref}",
        html=_wrap("Payment received", body, business_name),
    )
