"""
Seat accounting for shared tours.

``check_availability`` is the public, read-only answer and may be stale by the
time a purchase lands. Purchases re-run ``evaluate_availability`` against a
tour row locked with ``lock_tour_for_purchase`` so two buyers cannot both take
the last seats.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from django.db import transaction
from django.db.models import QuerySet, Sum
from django.utils import timezone

from core.errors import NotFoundError, ValidationError

from .models import SharedTour, SharedTourTicket

logger = logging.getLogger(__name__)

SOLD_OUT = "Tour is sold out"


@dataclass(frozen=True)
class AvailabilityResult:
    available: bool
    remaining_capacity: int
    reason: str = ""

    def as_dict(self) -> dict:
        return {
            "available": self.available,
            "remaining_capacity": self.remaining_capacity,
            "reason": self.reason or None,
        }


def active_tickets(tour: SharedTour, now: Optional[datetime] = None) -> QuerySet:
    """Tickets currently holding seats: not cancelled or expired, and not an unpaid lapsed hold."""
    now = now or timezone.now()
    return (
        SharedTourTicket.objects.filter(tour=tour)
        .exclude(status__in=SharedTourTicket.INACTIVE_STATUSES)
        .exclude(payment_status=SharedTourTicket.PENDING, hold_expires_at__lte=now)
    )


def active_ticket_count(tour: SharedTour, now: Optional[datetime] = None) -> int:
    total = active_tickets(tour, now).aggregate(total=Sum("ticket_count"))["total"]
    return total or 0


def paid_ticket_count(tour: SharedTour) -> int:
    total = (
        SharedTourTicket.objects.filter(tour=tour, payment_status=SharedTourTicket.PAID)
        .exclude(status__in=SharedTourTicket.INACTIVE_STATUSES)
        .aggregate(total=Sum("ticket_count"))["total"]
    )
    return total or 0


def remaining_capacity(tour: SharedTour, now: Optional[datetime] = None) -> int:
    return max(tour.max_guests - active_ticket_count(tour, now), 0)


def closed_reason(tour: SharedTour, now: Optional[datetime] = None) -> Optional[str]:
    """Why the tour cannot take bookings at all, independent of seat counts."""
    now = now or timezone.now()
    if tour.status == SharedTour.CANCELLED:
        return "Tour has been cancelled"
    if tour.status == SharedTour.COMPLETED:
        return "Tour has already taken place"
    if not tour.is_published:
        return "Tour is not available for booking"
    if now >= tour.booking_closes_at:
        return "Booking deadline has passed"
    return None


def _validate_requested(requested_tickets) -> int:
    if isinstance(requested_tickets, bool) or not isinstance(requested_tickets, int):
        raise ValidationError({"tickets": "Ticket count must be a whole number."})
    if requested_tickets < 1:
        raise ValidationError({"tickets": "At least one ticket is required."})
    return requested_tickets


def evaluate_availability(
    tour: SharedTour,
    requested_tickets: int,
    now: Optional[datetime] = None,
) -> AvailabilityResult:
    requested_tickets = _validate_requested(requested_tickets)
    now = now or timezone.now()

    reason = closed_reason(tour, now)
    if reason:
        return AvailabilityResult(False, 0, reason)

    remaining = remaining_capacity(tour, now)
    if remaining == 0:
        return AvailabilityResult(False, 0, SOLD_OUT)
    if requested_tickets > remaining:
        return AvailabilityResult(
            False,
            remaining,
            f"Insufficient remaining capacity: only {remaining} spots remaining",
        )
    return AvailabilityResult(True, remaining)


def get_tour(tour_id) -> SharedTour:
    try:
        return SharedTour.objects.get(pk=tour_id)
    except (SharedTour.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Tour not found")


def check_availability(tour_id, requested_tickets: int, now: Optional[datetime] = None) -> AvailabilityResult:
    return evaluate_availability(get_tour(tour_id), requested_tickets, now)


def lock_tour_for_purchase(tour_id) -> SharedTour:
    """Lock the tour row until the surrounding transaction ends."""
    if not transaction.get_connection().in_atomic_block:
        raise RuntimeError("lock_tour_for_purchase must run inside transaction.atomic().")
    try:
        return SharedTour.objects.select_for_update().get(pk=tour_id)
    except (SharedTour.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Tour not found")


def expire_stale_holds(tour: Optional[SharedTour] = None, now: Optional[datetime] = None) -> int:
    """Mark unpaid tickets whose hold has lapsed as expired; returns how many were expired."""
    now = now or timezone.now()
    stale = SharedTourTicket.objects.filter(
        status=SharedTourTicket.CONFIRMED,
        payment_status=SharedTourTicket.PENDING,
        hold_expires_at__lte=now,
    )
    if tour is not None:
        stale = stale.filter(tour=tour)

    tour_ids = set(stale.values_list("tour_id", flat=True))
    expired = stale.update(status=SharedTourTicket.EXPIRED, updated_at=now)
    for tour_id in tour_ids:
        sync_tour_status(tour_id, now)
    if expired:
        logger.info("Expired %s unpaid ticket hold(s) across %s tour(s)", expired, len(tour_ids))
    return expired


def sync_tour_status(tour_id, now: Optional[datetime] = None) -> Optional[str]:
    """
    Recompute OPEN / CONFIRMED / FULL from the ticket rows.

    Cancelled and completed tours keep their status.
    """

    tour = SharedTour.objects.filter(pk=tour_id).first()
    if tour is None or tour.is_closed:
        return None

    if active_ticket_count(tour, now) >= tour.max_guests:
        status = SharedTour.FULL
    elif paid_ticket_count(tour) >= tour.min_guests:
        status = SharedTour.CONFIRMED
    else:
        status = SharedTour.OPEN

    if status != tour.status:
        SharedTour.objects.filter(pk=tour.pk).update(status=status, updated_at=timezone.now())
    return status
