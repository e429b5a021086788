import types
from datetime import date, time
from decimal import Decimal

import pytest
import stripe

from bookings.services import payments
from bookings.services.bookings import create_booking, record_booking_payment
from payments.models import Payment
from rates.defaults import install_default_rate_configs
from tours.models import SharedTour
from tours.services.tickets import create_ticket


@pytest.fixture
def ticket(db):
    install_default_rate_configs()
    tour = SharedTour.objects.create(
        title="Sunday Sip & Stroll",
        tour_date=date(2030, 6, 3),
        start_time=time(10, 30),
    )
    return create_ticket(tour_id=tour.id, ticket_count=2, customer_name="Ana", customer_email="ana@example.com")


def test_stub_intent_has_predictable_shape(settings):
    settings.STRIPE_USE_STUB = True

    intent = payments.create_payment_intent(
        amount_cents=5000,
        metadata={"ticket_id": 7},
        description="Test",
    )

    assert isinstance(intent, payments.PaymentIntentStub)
    assert intent.id.startswith("pi_test_")
    assert intent.client_secret.startswith(f"{intent.id}_secret_")
    assert intent.status == Payment.REQUIRES_PAYMENT
    assert intent.currency == "usd"
    assert intent.metadata == {"ticket_id": "7"}


def test_missing_secret_key_falls_back_to_stub(settings):
    settings.STRIPE_USE_STUB = False
    settings.STRIPE_SECRET_KEY = ""

    intent = payments.create_payment_intent(amount_cents=100, metadata={}, description="Test")

    assert isinstance(intent, payments.PaymentIntentStub)


def test_uses_stripe_when_configured(monkeypatch, settings):
    settings.STRIPE_USE_STUB = False
    settings.STRIPE_SECRET_KEY = "sk_test_123"

    captured = {}
    original_api_key = stripe.api_key

    def fake_create(**kwargs):
        captured["kwargs"] = kwargs
        return types.SimpleNamespace(
            id="pi_real_123",
            client_secret="pi_real_123_secret_abc",
            amount=kwargs["amount"],
            currency=kwargs["currency"],
            status="requires_payment_method",
        )

    monkeypatch.setattr(stripe.PaymentIntent, "create", staticmethod(fake_create))

    try:
        intent = payments.create_payment_intent(
            amount_cents=25093,
            metadata={"ticket_id": 12, "type": "shared_tour_ticket"},
            description="Sunday Sip & Stroll - 2 ticket(s)",
        )
        assert intent.id == "pi_real_123"
        assert stripe.api_key == "sk_test_123"
        kwargs = captured["kwargs"]
        assert kwargs["amount"] == 25093
        assert kwargs["currency"] == "usd"
        assert kwargs["metadata"] == {"ticket_id": "12", "type": "shared_tour_ticket"}
        assert kwargs["automatic_payment_methods"] == {"enabled": True}
    finally:
        stripe.api_key = original_api_key


def test_ticket_payment_charges_the_full_total(ticket):
    payment = ticket.payment

    assert payment.kind == Payment.FULL
    assert payment.amount_cents == 25093
    assert payment.ticket == ticket
    assert payment.client_secret
    ticket.refresh_from_db()
    assert ticket.stripe_payment_intent_id == payment.stripe_payment_intent


def test_payment_payload_exposes_client_secret(ticket):
    payload = payments.payment_payload(ticket.payment)

    assert payload["payment_intent_id"] == ticket.payment.stripe_payment_intent
    assert payload["client_secret"] == ticket.payment.client_secret
    assert payload["amount_cents"] == 25093
    assert payload["currency"] == "usd"
    assert payments.payment_payload(None) is None


def test_balance_payment_uses_remaining_amount(db):
    install_default_rate_configs()

    booking = create_booking(
        customer_name="Dana Lee",
        customer_email="dana@example.com",
        tour_date=date(2030, 6, 3),
        duration_hours=Decimal("2"),
        party_size=2,
    )
    record_booking_payment(booking, booking.payment)

    balance = payments.start_booking_payment(booking, kind=Payment.FULL)

    assert balance.kind == Payment.FULL
    assert balance.amount_cents == 18547
