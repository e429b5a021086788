from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional
from uuid import uuid4

from django.conf import settings

from core.errors import PaymentUnavailableError
from core.money import to_cents
from payments.models import Payment

logger = logging.getLogger(__name__)


@dataclass
class PaymentIntentStub:
    """
    Lightweight stand-in for stripe.PaymentIntent when running in stub mode.

    Tests and local development do not hit Stripe; instead, we return predictable
    identifiers so the rest of the purchase flow (emails, payment records,
    webhooks) behaves as if Stripe responded.
    """

    id: str
    client_secret: str
    amount: int
    currency: str
    status: str
    metadata: dict


def _stub_payment_intent(*, amount_cents: int, currency: str, metadata: dict) -> PaymentIntentStub:
    intent_id = f"pi_test_{uuid4().hex}"
    return PaymentIntentStub(
        id=intent_id,
        client_secret=f"{intent_id}_secret_{uuid4().hex[:12]}",
        amount=amount_cents,
        currency=currency,
        status=Payment.REQUIRES_PAYMENT,
        metadata=metadata,
    )


def _get_stripe_api_key() -> Optional[str]:
    key = getattr(settings, "STRIPE_SECRET_KEY", "")
    return key or None


def _should_use_stub() -> bool:
    if getattr(settings, "STRIPE_USE_STUB", False):
        return True
    return _get_stripe_api_key() is None


def create_payment_intent(*, amount_cents: int, metadata: dict, description: str, currency: Optional[str] = None):
    """
    Create a Stripe PaymentIntent (or stub equivalent).

    Returns an object with the subset of attributes (`id`, `client_secret`,
    `status`) consumed by the ticket and booking workflows. A Stripe failure
    is logged and raised as ``PaymentUnavailableError``.
    """

    currency = currency or getattr(settings, "PAYMENT_CURRENCY", "usd")
    metadata = {key: str(value) for key, value in metadata.items()}

    if _should_use_stub():
        return _stub_payment_intent(amount_cents=amount_cents, currency=currency, metadata=metadata)

    import stripe

    stripe.api_key = _get_stripe_api_key()
    try:
        return stripe.PaymentIntent.create(
            amount=amount_cents,
            currency=currency,
            description=description,
            metadata=metadata,
            automatic_payment_methods={"enabled": True},
        )
    except stripe.StripeError as exc:
        logger.error(
            "Stripe could not create a payment intent (%s): %s",
            description,
            exc,
            extra={"payment_metadata": metadata},
        )
        raise PaymentUnavailableError() from exc


def start_ticket_payment(ticket) -> Payment:
    """Open a full-amount payment intent for a shared tour ticket."""
    amount_cents = to_cents(ticket.total_amount)
    intent = create_payment_intent(
        amount_cents=amount_cents,
        description=f"{ticket.tour.title} - {ticket.ticket_count} ticket(s) ({ticket.ticket_number})",
        metadata={
            "type": "shared_tour_ticket",
            "ticket_id": ticket.id,
            "ticket_number": ticket.ticket_number,
            "tour_id": ticket.tour_id,
        },
    )
    payment = Payment.objects.create(
        ticket=ticket,
        kind=Payment.FULL,
        amount_cents=amount_cents,
        currency=intent.currency,
        stripe_payment_intent=intent.id,
        status=intent.status,
    )
    ticket.stripe_payment_intent_id = intent.id
    ticket.save(update_fields=["stripe_payment_intent_id", "updated_at"])
    payment.client_secret = intent.client_secret
    return payment


def start_booking_payment(booking, *, kind: str = Payment.DEPOSIT) -> Payment:
    """Open a deposit (or balance) payment intent for a private booking."""
    amount = booking.deposit_amount if kind == Payment.DEPOSIT else booking.balance_due
    amount_cents = to_cents(amount)
    intent = create_payment_intent(
        amount_cents=amount_cents,
        description=f"Booking {booking.booking_number} {kind.lower()}",
        metadata={
            "type": "booking",
            "booking_id": booking.id,
            "booking_number": booking.booking_number,
            "kind": kind,
        },
    )
    payment = Payment.objects.create(
        booking=booking,
        kind=kind,
        amount_cents=amount_cents,
        currency=intent.currency,
        stripe_payment_intent=intent.id,
        status=intent.status,
    )
    payment.client_secret = intent.client_secret
    return payment


def payment_payload(payment: Optional[Payment]) -> Optional[dict]:
    """What a browser needs to finish paying: the intent id and its client secret."""
    if payment is None:
        return None
    return {
        "payment_intent_id": payment.stripe_payment_intent,
        "client_secret": getattr(payment, "client_secret", None),
        "amount_cents": payment.amount_cents,
        "currency": payment.currency,
    }
