from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from bookings.services.emails import send_ticket_confirmation_email, send_tour_cancellation_email
from bookings.services.payments import start_ticket_payment
from core.errors import ConflictError, PaymentUnavailableError, ValidationError
from core.money import quantize_money, to_decimal
from core.models import NumberSequence
from rates.config import FeeSchedule, load_fee_schedule

from ..availability import (
    closed_reason,
    evaluate_availability,
    expire_stale_holds,
    lock_tour_for_purchase,
)
from ..models import SharedTour, SharedTourTicket

logger = logging.getLogger(__name__)

PAYMENT_UNAVAILABLE_REASON = "Payment could not be started."

MANIFEST_STATUSES = (
    SharedTourTicket.CONFIRMED,
    SharedTourTicket.ATTENDED,
    SharedTourTicket.NO_SHOW,
)


@dataclass(frozen=True)
class TicketPrice:
    price_per_person: Decimal
    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal

    def as_dict(self) -> dict:
        return {
            "price_per_person": str(self.price_per_person),
            "subtotal": str(self.subtotal),
            "tax_amount": str(self.tax_amount),
            "total_amount": str(self.total_amount),
        }


def calculate_ticket_price(
    tour: SharedTour,
    ticket_count: int,
    includes_lunch: bool,
    fees: FeeSchedule,
) -> TicketPrice:
    per_person = to_decimal(tour.lunch_price_per_person if includes_lunch else tour.base_price_per_person)
    subtotal = quantize_money(per_person * ticket_count)
    tax_amount = quantize_money(subtotal * fees.tax_rate)
    return TicketPrice(
        price_per_person=quantize_money(per_person),
        subtotal=subtotal,
        tax_amount=tax_amount,
        total_amount=subtotal + tax_amount,
    )


def _next_ticket_number(tour: SharedTour) -> str:
    """``ST-YYYYMMDD-NNN``, numbered across every tour running that day."""
    prefix = f"ST-{tour.tour_date:%Y%m%d}-"
    while True:
        number = f"{prefix}{NumberSequence.next_value(prefix):03d}"
        if not SharedTourTicket.objects.filter(ticket_number=number).exists():
            return number


def _release_unpayable_ticket(ticket: SharedTourTicket) -> None:
    ticket.status = SharedTourTicket.CANCELLED
    ticket.cancelled_at = timezone.now()
    ticket.cancellation_reason = PAYMENT_UNAVAILABLE_REASON
    ticket.save(update_fields=["status", "cancelled_at", "cancellation_reason", "updated_at"])
    logger.warning("Released ticket %s: payment could not be started", ticket.ticket_number)


def create_ticket(
    *,
    tour_id,
    ticket_count: int,
    customer_name: str,
    customer_email: str,
    customer_phone: str = "",
    guest_names: Optional[Iterable[str]] = None,
    includes_lunch: Optional[bool] = None,
    dietary_restrictions: str = "",
    special_requests: str = "",
    now: Optional[datetime] = None,
) -> SharedTourTicket:
    """
    Sell ``ticket_count`` seats on a shared tour.

    The capacity check and the insert share one transaction with the tour row
    locked, so concurrent purchases are serialized per tour. A request that no
    longer fits raises ``ConflictError``; a tour that is closed for booking
    raises ``ValidationError``. The payment intent is opened and the
    confirmation email queued once the ticket row is committed.
    """

    fees = load_fee_schedule()

    with transaction.atomic():
        tour = lock_tour_for_purchase(tour_id)
        now = now or timezone.now()
        expire_stale_holds(tour, now)

        result = evaluate_availability(tour, ticket_count, now)
        if not result.available:
            if closed_reason(tour, now):
                raise ValidationError(result.reason)
            logger.info(
                "Rejected %s ticket(s) for tour %s: %s",
                ticket_count,
                tour.pk,
                result.reason,
            )
            raise ConflictError(
                result.reason,
                context={"tour_id": tour.pk, "remaining_capacity": result.remaining_capacity},
            )

        if includes_lunch is None:
            includes_lunch = tour.lunch_included_default
        price = calculate_ticket_price(tour, ticket_count, includes_lunch, fees)
        ticket = SharedTourTicket.objects.create(
            tour=tour,
            ticket_number=_next_ticket_number(tour),
            ticket_count=ticket_count,
            customer_name=customer_name,
            customer_email=customer_email.lower(),
            customer_phone=customer_phone,
            guest_names=list(guest_names or []),
            includes_lunch=includes_lunch,
            dietary_restrictions=dietary_restrictions,
            special_requests=special_requests,
            price_per_person=price.price_per_person,
            subtotal=price.subtotal,
            tax_amount=price.tax_amount,
            total_amount=price.total_amount,
            hold_expires_at=now + timedelta(minutes=settings.SHARED_TOUR_HOLD_MINUTES),
        )

    logger.info(
        "Ticket %s created for tour %s (%s seat(s), total %s)",
        ticket.ticket_number,
        tour.pk,
        ticket.ticket_count,
        ticket.total_amount,
    )

    try:
        ticket.payment = start_ticket_payment(ticket)
    except PaymentUnavailableError:
        _release_unpayable_ticket(ticket)
        raise
    transaction.on_commit(lambda: send_ticket_confirmation_email(ticket=ticket))
    return ticket


def mark_ticket_paid(
    ticket: SharedTourTicket,
    payment_intent_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> SharedTourTicket:
    """
    Record payment for a ticket. Paying an expired hold reinstates it only if
    the seats are still free.
    """

    now = now or timezone.now()
    with transaction.atomic():
        lock_tour_for_purchase(ticket.tour_id)
        ticket = SharedTourTicket.objects.select_related("tour").get(pk=ticket.pk)

        if ticket.payment_status == SharedTourTicket.PAID:
            return ticket
        if ticket.status == SharedTourTicket.CANCELLED:
            raise ConflictError(f"Ticket {ticket.ticket_number} is cancelled.")
        if ticket.status == SharedTourTicket.EXPIRED or ticket.hold_has_expired(now):
            ticket.status = SharedTourTicket.EXPIRED
            result = evaluate_availability(ticket.tour, ticket.ticket_count, now)
            if not result.available:
                logger.warning(
                    "Payment arrived for lapsed ticket %s but seats are gone: %s",
                    ticket.ticket_number,
                    result.reason,
                )
                raise ConflictError(
                    f"Ticket {ticket.ticket_number} hold expired and the seats were released.",
                    context={"ticket_id": ticket.pk},
                )
            ticket.status = SharedTourTicket.CONFIRMED

        ticket.payment_status = SharedTourTicket.PAID
        ticket.paid_at = now
        ticket.hold_expires_at = None
        update_fields = ["status", "payment_status", "paid_at", "hold_expires_at", "updated_at"]
        if payment_intent_id:
            ticket.stripe_payment_intent_id = payment_intent_id
            update_fields.append("stripe_payment_intent_id")
        ticket.save(update_fields=update_fields)

    logger.info("Ticket %s marked paid", ticket.ticket_number)
    return ticket


def cancel_ticket(
    ticket: SharedTourTicket,
    reason: str,
    refund_amount=None,
    now: Optional[datetime] = None,
) -> SharedTourTicket:
    if ticket.status in SharedTourTicket.INACTIVE_STATUSES:
        raise ValidationError(f"Ticket {ticket.ticket_number} is already {ticket.get_status_display().lower()}.")

    if refund_amount is not None:
        refund_amount = quantize_money(to_decimal(refund_amount))
        if ticket.payment_status != SharedTourTicket.PAID:
            raise ValidationError({"refund_amount": "Only paid tickets can be refunded."})
        if refund_amount < 0 or refund_amount > ticket.total_amount:
            raise ValidationError({"refund_amount": "Refund must be between 0 and the ticket total."})
        ticket.payment_status = SharedTourTicket.REFUNDED
        ticket.refund_amount = refund_amount

    ticket.status = SharedTourTicket.CANCELLED
    ticket.cancelled_at = now or timezone.now()
    ticket.cancellation_reason = reason or ""
    ticket.save(
        update_fields=[
            "status",
            "payment_status",
            "refund_amount",
            "cancelled_at",
            "cancellation_reason",
            "updated_at",
        ]
    )
    logger.info("Ticket %s cancelled: %s", ticket.ticket_number, reason or "no reason given")
    return ticket


def check_in_ticket(ticket: SharedTourTicket, now: Optional[datetime] = None) -> SharedTourTicket:
    if ticket.status != SharedTourTicket.CONFIRMED:
        raise ValidationError(
            f"Only confirmed tickets can be checked in; {ticket.ticket_number} is {ticket.get_status_display().lower()}."
        )
    ticket.status = SharedTourTicket.ATTENDED
    ticket.check_in_at = now or timezone.now()
    ticket.save(update_fields=["status", "check_in_at", "updated_at"])
    return ticket


def tour_manifest(tour: SharedTour) -> dict:
    """Paid guest list for the driver, ordered by customer name."""
    tickets = list(
        tour.tickets.filter(
            payment_status=SharedTourTicket.PAID,
            status__in=MANIFEST_STATUSES,
        ).order_by("customer_name", "ticket_number")
    )
    guests = [
        {
            "ticket_number": ticket.ticket_number,
            "customer_name": ticket.customer_name,
            "customer_email": ticket.customer_email,
            "customer_phone": ticket.customer_phone,
            "ticket_count": ticket.ticket_count,
            "guest_names": ticket.guest_names,
            "includes_lunch": ticket.includes_lunch,
            "dietary_restrictions": ticket.dietary_restrictions,
            "special_requests": ticket.special_requests,
            "status": ticket.status,
            "check_in_at": ticket.check_in_at.isoformat() if ticket.check_in_at else None,
        }
        for ticket in tickets
    ]
    return {
        "tour_id": tour.pk,
        "title": tour.title,
        "tour_date": tour.tour_date.isoformat(),
        "start_time": tour.start_time.isoformat(),
        "meeting_location": tour.meeting_location,
        "total_guests": sum(ticket.ticket_count for ticket in tickets),
        "lunch_count": sum(ticket.ticket_count for ticket in tickets if ticket.includes_lunch),
        "checked_in": sum(ticket.ticket_count for ticket in tickets if ticket.status == SharedTourTicket.ATTENDED),
        "guests": guests,
    }


def cancel_tour(tour: SharedTour, reason: str = "", now: Optional[datetime] = None) -> SharedTour:
    """Cancel a tour and every live ticket on it; paid tickets are refunded in full."""
    now = now or timezone.now()
    with transaction.atomic():
        tour = lock_tour_for_purchase(tour.pk)
        if tour.status == SharedTour.CANCELLED:
            return tour
        if tour.status == SharedTour.COMPLETED:
            raise ValidationError("Completed tours cannot be cancelled.")

        tour.status = SharedTour.CANCELLED
        tour.save(update_fields=["status", "updated_at"])

        live = tour.tickets.exclude(status__in=SharedTourTicket.INACTIVE_STATUSES)
        cancelled = []
        for ticket in live:
            refund = ticket.total_amount if ticket.payment_status == SharedTourTicket.PAID else None
            cancelled.append(
                cancel_ticket(ticket, reason or "Tour cancelled", refund_amount=refund, now=now)
            )

    logger.info("Tour %s cancelled with %s ticket(s) affected", tour.pk, len(cancelled))
    for ticket in cancelled:
        transaction.on_commit(lambda ticket=ticket: send_tour_cancellation_email(ticket=ticket))
    return tour


def expire_ticket_holds(now: Optional[datetime] = None) -> int:
    with transaction.atomic():
        return expire_stale_holds(now=now)
