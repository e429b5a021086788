from datetime import date, time
from decimal import Decimal

import pytest
import stripe
from django.urls import reverse
from rest_framework.test import APIClient

from bookings.models import Booking
from bookings.services.bookings import create_booking
from payments.models import Payment
from rates.defaults import install_default_rate_configs
from tours.models import SharedTour, SharedTourTicket
from tours.services.tickets import create_ticket


@pytest.fixture
def rate_configs(db):
    install_default_rate_configs()


@pytest.fixture
def ticket(rate_configs):
    tour = SharedTour.objects.create(
        title="Sunday Sip & Stroll",
        tour_date=date(2030, 6, 3),
        start_time=time(10, 30),
    )
    return create_ticket(tour_id=tour.id, ticket_count=2, customer_name="Ana", customer_email="ana@example.com")


@pytest.fixture
def booking(rate_configs):
    return create_booking(
        customer_name="Dana Lee",
        customer_email="dana@example.com",
        tour_date=date(2030, 6, 3),
        duration_hours=Decimal("4"),
        party_size=2,
    )


def _post_event(monkeypatch, event):
    def mock_construct_event(payload, sig_header, secret):
        assert secret == "whsec_test"
        return event

    monkeypatch.setattr("payments.api.stripe.Webhook.construct_event", mock_construct_event)
    return APIClient().post(
        reverse("stripe-webhook"),
        data={"dummy": "value"},
        format="json",
        HTTP_STRIPE_SIGNATURE="sig_test",
    )


def _intent_event(event_type, intent_id, **extra):
    return {"type": event_type, "data": {"object": {"id": intent_id, **extra}}}


def test_succeeded_intent_marks_ticket_paid(monkeypatch, ticket):
    intent_id = ticket.payment.stripe_payment_intent

    response = _post_event(monkeypatch, _intent_event("payment_intent.succeeded", intent_id))

    assert response.status_code == 200
    assert response.json() == {"success": True, "data": {"received": True}}
    ticket.refresh_from_db()
    assert ticket.payment_status == SharedTourTicket.PAID
    assert Payment.objects.get(stripe_payment_intent=intent_id).status == Payment.SUCCEEDED


def test_repeated_event_is_harmless(monkeypatch, ticket):
    event = _intent_event("payment_intent.succeeded", ticket.payment.stripe_payment_intent)

    _post_event(monkeypatch, event)
    ticket.refresh_from_db()
    paid_at = ticket.paid_at
    response = _post_event(monkeypatch, event)

    assert response.status_code == 200
    ticket.refresh_from_db()
    assert ticket.paid_at == paid_at


def test_succeeded_deposit_confirms_booking(monkeypatch, booking):
    response = _post_event(
        monkeypatch,
        _intent_event("payment_intent.succeeded", booking.payment.stripe_payment_intent),
    )

    assert response.status_code == 200
    booking.refresh_from_db()
    assert booking.payment_status == Booking.DEPOSIT_PAID
    assert booking.status == Booking.CONFIRMED


def test_failed_intent_records_reason(monkeypatch, booking):
    intent_id = booking.payment.stripe_payment_intent

    response = _post_event(
        monkeypatch,
        _intent_event(
            "payment_intent.payment_failed",
            intent_id,
            last_payment_error={"message": "Your card was declined."},
        ),
    )

    assert response.status_code == 200
    payment = Payment.objects.get(stripe_payment_intent=intent_id)
    assert payment.status == Payment.FAILED
    assert payment.failure_message == "Your card was declined."
    booking.refresh_from_db()
    assert booking.payment_status == Booking.UNPAID


def test_unknown_intent_is_acknowledged(monkeypatch, db, caplog):
    response = _post_event(monkeypatch, _intent_event("payment_intent.succeeded", "pi_unknown"))

    assert response.status_code == 200
    assert "unknown payment intent pi_unknown" in caplog.text


def test_unhandled_event_type_is_acknowledged(monkeypatch, db):
    response = _post_event(monkeypatch, {"type": "customer.created", "data": {"object": {"id": "cus_1"}}})

    assert response.status_code == 200


def test_invalid_signature_is_rejected(monkeypatch, db):
    def mock_construct_event(payload, sig_header, secret):
        raise stripe.SignatureVerificationError("bad signature", sig_header)

    monkeypatch.setattr("payments.api.stripe.Webhook.construct_event", mock_construct_event)

    response = APIClient().post(
        reverse("stripe-webhook"),
        data={"dummy": "value"},
        format="json",
        HTTP_STRIPE_SIGNATURE="sig_bad",
    )

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Invalid signature."}


def test_missing_webhook_secret_is_a_server_error(settings, db):
    settings.STRIPE_WEBHOOK_SECRET = ""

    response = APIClient().post(reverse("stripe-webhook"), data={}, format="json")

    assert response.status_code == 500
