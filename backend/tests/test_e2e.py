from datetime import date, time

import pytest
from django.core import mail
from rest_framework.test import APIClient

from accounts.models import User
from payments.models import Payment
from rates.defaults import install_default_rate_configs
from tours.models import SharedTour


def _stripe_event(monkeypatch, event_type, intent_id):
    event = {"type": event_type, "data": {"object": {"id": intent_id}}}
    monkeypatch.setattr("payments.api.stripe.Webhook.construct_event", lambda payload, sig, secret: event)


@pytest.mark.django_db
def test_end_to_end_quote_booking_and_ticket_flow(monkeypatch, django_capture_on_commit_callbacks):
    install_default_rate_configs()
    client = APIClient()

    # Admin signs in and raises the Thursday-Saturday 1-2 guest rate
    User.objects.create_user(
        username="owner@example.com",
        email="owner@example.com",
        password="pass12345",
        role=User.ADMIN,
    )
    login = client.post("/api/auth/login/", {"email": "owner@example.com", "password": "pass12345"}, format="json")
    assert login.status_code == 200
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {login.data['access']}")

    config = client.get("/api/admin/rates/wine_tours/").json()["data"]["config_value"]
    config["tiers"][0]["rates"]["thu_sat"] = "100.00"
    update = client.put(
        "/api/admin/rates/wine_tours/",
        {"config_value": config, "change_reason": "Summer season"},
        format="json",
    )
    assert update.status_code == 200
    history = client.get("/api/admin/rates/wine_tours/history/").json()["data"]
    assert history[0]["change_reason"] == "Summer season"

    # Public quote picks up the new rate immediately
    public = APIClient()
    quote = public.post(
        "/api/pricing/calculate/",
        {"date": "2030-06-08", "duration_hours": "5", "party_size": 2},
        format="json",
    ).json()["data"]
    assert quote["hourly_rate"] == "100.00"
    assert quote["subtotal"] == "500.00"

    # Customer books the same tour; deposit is paid through Stripe
    with django_capture_on_commit_callbacks(execute=True):
        booking = public.post(
            "/api/bookings/",
            {
                "customer_name": "Dana Lee",
                "customer_email": "dana@example.com",
                "tour_date": "2030-06-08",
                "duration_hours": "5",
                "party_size": 2,
            },
            format="json",
        ).json()["data"]
    assert booking["total"] == quote["total"]
    assert len(mail.outbox) == 1

    _stripe_event(monkeypatch, "payment_intent.succeeded", booking["payment"]["payment_intent_id"])
    webhook = public.post("/api/webhooks/stripe/", {}, format="json", HTTP_STRIPE_SIGNATURE="sig")
    assert webhook.status_code == 200

    detail = client.get(f"/api/admin/bookings/{booking['id']}/").json()["data"]
    assert detail["status"] == "CONFIRMED"
    assert detail["payment_status"] == "DEPOSIT_PAID"

    # Shared tour: two buyers race for the last seats
    tour = SharedTour.objects.create(tour_date=date(2030, 6, 9), start_time=time(11, 0), max_guests=3)
    availability = public.get(f"/api/shared-tours/{tour.id}/availability/", {"tickets": 2}).json()["data"]
    assert availability == {"available": True, "remaining_capacity": 3, "reason": None}

    first = public.post(
        f"/api/shared-tours/{tour.id}/tickets/",
        {"ticket_count": 2, "customer_name": "Ana", "customer_email": "ana@example.com"},
        format="json",
    )
    second = public.post(
        f"/api/shared-tours/{tour.id}/tickets/",
        {"ticket_count": 2, "customer_name": "Bo", "customer_email": "bo@example.com"},
        format="json",
    )
    assert first.status_code == 201
    assert second.status_code == 409

    ticket = first.json()["data"]
    _stripe_event(monkeypatch, "payment_intent.succeeded", ticket["payment"]["payment_intent_id"])
    assert public.post("/api/webhooks/stripe/", {}, format="json", HTTP_STRIPE_SIGNATURE="sig").status_code == 200
    assert Payment.objects.get(stripe_payment_intent=ticket["payment"]["payment_intent_id"]).status == Payment.SUCCEEDED

    manifest = client.get(f"/api/admin/shared-tours/{tour.id}/manifest/").json()["data"]
    assert manifest["total_guests"] == 2
    assert manifest["guests"][0]["ticket_number"] == ticket["ticket_number"]
    tour.refresh_from_db()
    assert tour.status == SharedTour.CONFIRMED
