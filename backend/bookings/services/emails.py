from __future__ import annotations

import logging
from typing import Optional

from django.conf import settings
from django.core.mail import send_mail

from core.money import format_money

logger = logging.getLogger(__name__)


def _business_name() -> str:
    default_from = settings.DEFAULT_FROM_EMAIL
    if "<" in default_from:
        return default_from.split("<", 1)[0].strip() or "Our team"
    return "Our team"


def _deliver(subject: str, body_lines, recipients) -> bool:
    """Send a plain-text message; failures are logged and reported as ``False``."""
    recipients = [address for address in recipients if address]
    if not recipients:
        return False
    try:
        send_mail(
            subject,
            "\n".join(body_lines),
            settings.DEFAULT_FROM_EMAIL,
            recipients,
            fail_silently=False,
        )
    except Exception:
        logger.exception("Failed to send '%s' to %s", subject, ", ".join(recipients))
        return False
    return True


def send_ticket_confirmation_email(*, ticket) -> bool:
    tour = ticket.tour
    subject = f"Your tickets for {tour.title} on {tour.tour_date:%B %d, %Y}"
    lunch = "Lunch included" if ticket.includes_lunch else "Lunch not included"
    body_lines = [
        f"Hi {ticket.customer_name},",
        "",
        f"You're booked on {tour.title}.",
        f"Ticket number: {ticket.ticket_number}",
        f"Date: {tour.tour_date:%A, %B %d, %Y} at {tour.start_time:%I:%M %p}",
        f"Guests: {ticket.ticket_count} ({lunch})",
    ]
    if tour.meeting_location:
        body_lines.append(f"Meeting point: {tour.meeting_location}")
    body_lines += [
        "",
        f"Subtotal: ${format_money(ticket.subtotal)}",
        f"Tax: ${format_money(ticket.tax_amount)}",
        f"Total: ${format_money(ticket.total_amount)}",
    ]
    if ticket.payment_status == ticket.PENDING:
        body_lines += [
            "",
            "Your seats are held while payment is completed:",
            f" • Complete payment: {settings.FRONTEND_URL.rstrip('/')}/shared-tours/tickets/{ticket.ticket_number}/pay",
        ]
        if ticket.hold_expires_at:
            body_lines.append(f" • Hold expires: {ticket.hold_expires_at:%B %d, %Y %H:%M %Z}")
    body_lines += [
        "",
        "If you have any questions, reply to this email and we will help.",
        "",
        "Cheers,",
        _business_name(),
    ]
    return _deliver(subject, body_lines, [ticket.customer_email])


def send_booking_confirmation_email(*, booking, payment_url: Optional[str] = None) -> bool:
    subject = f"Booking {booking.booking_number} received"
    body_lines = [
        f"Hi {booking.customer_name},",
        "",
        f"Thanks for booking a private tour on {booking.tour_date:%A, %B %d, %Y}.",
        f"Booking number: {booking.booking_number}",
        f"Party size: {booking.party_size}",
        f"Hours: {booking.hours_label}",
        "",
        f"Subtotal: ${format_money(booking.subtotal)}",
    ]
    if booking.modifier_total:
        body_lines.append(f"Adjustments: ${format_money(booking.modifier_total)}")
    if booking.discount_amount:
        body_lines.append(f"Discount: -${format_money(booking.discount_amount)}")
    body_lines += [
        f"Tax: ${format_money(booking.tax_amount)}",
        f"Total: ${format_money(booking.total)}",
        f"Deposit due: ${format_money(booking.deposit_amount)}",
    ]
    if payment_url:
        body_lines += ["", "Next steps:", f" • Pay your deposit: {payment_url}"]
    body_lines += [
        "",
        "If you have any questions, reply to this email and we will help.",
        "",
        "Cheers,",
        _business_name(),
    ]
    return _deliver(subject, body_lines, [booking.customer_email])


def send_tour_cancellation_email(*, ticket) -> bool:
    tour = ticket.tour
    subject = f"{tour.title} on {tour.tour_date:%B %d, %Y} has been cancelled"
    body_lines = [
        f"Hi {ticket.customer_name},",
        "",
        f"Unfortunately {tour.title} on {tour.tour_date:%A, %B %d, %Y} has been cancelled.",
        f"Ticket number: {ticket.ticket_number}",
    ]
    if ticket.payment_status == ticket.REFUNDED and ticket.refund_amount is not None:
        body_lines.append(f"A refund of ${format_money(ticket.refund_amount)} is on its way.")
    body_lines += [
        "",
        "We're sorry for the inconvenience.",
        "",
        "Cheers,",
        _business_name(),
    ]
    return _deliver(subject, body_lines, [ticket.customer_email])
