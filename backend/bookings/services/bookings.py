"""
Private tour bookings.

A booking stores the pricing engine's quote at the moment it was priced.
``create_booking`` and ``recalculate_booking`` are the only writers of the
pricing columns; everything else changes status only.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from core.errors import PaymentUnavailableError, ValidationError
from core.models import NumberSequence
from payments.models import Payment
from rates.models import RateConfig
from rates.pricing import Quote, quote_for_request

from ..models import Booking
from .emails import send_booking_confirmation_email
from .payments import start_booking_payment

logger = logging.getLogger(__name__)

REPRICE_FIELDS = frozenset({"service_key", "tour_date", "duration_hours", "party_size", "custom_discount"})


def _pricing_fields(quote: Quote) -> dict:
    breakdown = quote.breakdown
    return {
        "service_key": breakdown.service_key,
        "tour_date": breakdown.tour_date,
        "party_size": breakdown.party_size,
        "duration_hours": breakdown.requested_hours,
        "hourly_rate": breakdown.hourly_rate,
        "requested_hours": breakdown.requested_hours,
        "minimum_hours": breakdown.minimum_hours,
        "billable_hours": breakdown.billable_hours,
        "minimum_applied": breakdown.minimum_applied,
        "rate_tier": breakdown.rate_tier,
        "day_type": breakdown.day_type,
        "subtotal": breakdown.subtotal,
        "modifier_total": quote.modifier_total,
        "discount_percent": quote.discount_percent,
        "discount_amount": quote.discount_amount,
        "tax_amount": quote.tax_amount,
        "total": quote.total,
        "deposit_amount": quote.deposit_amount,
        "pricing_snapshot": quote.as_dict(),
    }


def _next_booking_number(now: datetime) -> str:
    """``WWT-YYYY-NNNNN``, numbered within the year the booking was made."""
    prefix = f"WWT-{timezone.localtime(now):%Y}-"
    while True:
        number = f"{prefix}{NumberSequence.next_value(prefix):05d}"
        if not Booking.objects.filter(booking_number=number).exists():
            return number


def payment_url_for(booking: Booking) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/bookings/{booking.booking_number}/pay"


def create_booking(
    *,
    customer_name: str,
    customer_email: str,
    tour_date: date,
    duration_hours,
    party_size: int,
    service_key: str = RateConfig.WINE_TOURS,
    customer_phone: str = "",
    start_time: Optional[time] = None,
    pickup_location: str = "",
    notes: str = "",
    custom_discount=None,
    now: Optional[datetime] = None,
) -> Booking:
    """
    Price and persist a private tour request.

    Pricing runs before anything is written, so a validation or configuration
    error leaves no booking behind. The deposit payment intent is opened and
    the confirmation email queued once the row exists.
    """

    now = now or timezone.now()
    booked_on = timezone.localdate(now)
    if tour_date < booked_on:
        raise ValidationError({"tour_date": "Tour date cannot be in the past."})

    quote = quote_for_request(
        service_key=service_key,
        tour_date=tour_date,
        duration_hours=duration_hours,
        party_size=party_size,
        custom_discount=custom_discount,
        booked_on=booked_on,
    )

    with transaction.atomic():
        booking = Booking.objects.create(
            booking_number=_next_booking_number(now),
            customer_name=customer_name,
            customer_email=customer_email.lower(),
            customer_phone=customer_phone,
            start_time=start_time,
            pickup_location=pickup_location,
            notes=notes,
            priced_at=now,
            **_pricing_fields(quote),
        )

    logger.info(
        "Booking %s created for %s on %s (%s guests, total %s)",
        booking.booking_number,
        booking.service_key,
        booking.tour_date,
        booking.party_size,
        booking.total,
    )

    try:
        booking.payment = start_booking_payment(booking)
    except PaymentUnavailableError:
        booking.status = Booking.CANCELLED
        booking.cancelled_at = timezone.now()
        booking.cancellation_reason = "Deposit payment could not be started."
        booking.save(update_fields=["status", "cancelled_at", "cancellation_reason", "updated_at"])
        logger.warning("Cancelled booking %s: deposit payment could not be started", booking.booking_number)
        raise
    payment_url = payment_url_for(booking)
    transaction.on_commit(lambda: send_booking_confirmation_email(booking=booking, payment_url=payment_url))
    return booking


def recalculate_booking(booking: Booking, actor, now: Optional[datetime] = None, **changes) -> Booking:
    """
    Re-price a booking, optionally with new pricing inputs.

    Modifiers are matched against the day the booking was originally made, and
    an earlier custom discount carries over unless a new one is given.
    """

    unknown = set(changes) - REPRICE_FIELDS
    if unknown:
        raise ValidationError(f"Cannot reprice using: {', '.join(sorted(unknown))}.")

    now = now or timezone.now()
    with transaction.atomic():
        booking = Booking.objects.select_for_update().get(pk=booking.pk)
        if booking.is_closed:
            raise ValidationError(
                f"Booking {booking.booking_number} is {booking.get_status_display().lower()} and cannot be repriced."
            )

        previous_total = booking.total
        quote = quote_for_request(
            service_key=changes.get("service_key", booking.service_key),
            tour_date=changes.get("tour_date", booking.tour_date),
            duration_hours=changes.get("duration_hours", booking.requested_hours),
            party_size=changes.get("party_size", booking.party_size),
            custom_discount=changes.get("custom_discount", booking.discount_percent),
            booked_on=timezone.localdate(booking.created_at),
        )
        for field, value in _pricing_fields(quote).items():
            setattr(booking, field, value)
        booking.priced_at = now
        booking.priced_by = actor
        booking.save()

    logger.info(
        "Booking %s repriced by %s: %s -> %s",
        booking.booking_number,
        getattr(actor, "email", None) or "system",
        previous_total,
        booking.total,
    )
    if booking.payment_status != Booking.UNPAID and booking.total != previous_total:
        logger.warning(
            "Booking %s total changed after payment was received (%s -> %s)",
            booking.booking_number,
            previous_total,
            booking.total,
        )
    return booking


def confirm_booking(booking: Booking, now: Optional[datetime] = None) -> Booking:
    if booking.status != Booking.PENDING:
        raise ValidationError(
            f"Only pending bookings can be confirmed; {booking.booking_number} is "
            f"{booking.get_status_display().lower()}."
        )
    booking.status = Booking.CONFIRMED
    booking.confirmed_at = now or timezone.now()
    booking.save(update_fields=["status", "confirmed_at", "updated_at"])
    logger.info("Booking %s confirmed", booking.booking_number)
    return booking


def cancel_booking(booking: Booking, reason: str = "", now: Optional[datetime] = None) -> Booking:
    if booking.is_closed:
        raise ValidationError(
            f"Booking {booking.booking_number} is already {booking.get_status_display().lower()}."
        )
    booking.status = Booking.CANCELLED
    booking.cancelled_at = now or timezone.now()
    booking.cancellation_reason = reason or ""
    booking.save(update_fields=["status", "cancelled_at", "cancellation_reason", "updated_at"])
    logger.info("Booking %s cancelled: %s", booking.booking_number, reason or "no reason given")
    return booking


def record_booking_payment(booking: Booking, payment: Payment, now: Optional[datetime] = None) -> Booking:
    """Apply a succeeded payment; a paid deposit also confirms a pending booking."""
    now = now or timezone.now()
    update_fields = ["payment_status", "updated_at"]
    if payment.kind == Payment.DEPOSIT:
        if booking.payment_status == Booking.UNPAID:
            booking.payment_status = Booking.DEPOSIT_PAID
    else:
        booking.payment_status = Booking.PAID

    if booking.status == Booking.PENDING:
        booking.status = Booking.CONFIRMED
        booking.confirmed_at = now
        update_fields += ["status", "confirmed_at"]
    elif booking.status == Booking.CANCELLED:
        logger.warning("Payment %s received for cancelled booking %s", payment.stripe_payment_intent, booking.booking_number)

    booking.save(update_fields=update_fields)
    logger.info("Booking %s payment recorded (%s)", booking.booking_number, booking.payment_status)
    return booking
