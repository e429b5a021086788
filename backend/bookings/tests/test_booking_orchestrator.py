from datetime import date, datetime, time
from decimal import Decimal

import pytest
import stripe
from django.contrib.auth import get_user_model
from django.core import mail
from django.utils import timezone

from bookings.models import Booking
from bookings.services.bookings import (
    cancel_booking,
    confirm_booking,
    create_booking,
    recalculate_booking,
    record_booking_payment,
)
from core.errors import ConfigurationError, PaymentUnavailableError, ValidationError
from core.models import NumberSequence
from payments.models import Payment
from rates.defaults import install_default_rate_configs
from rates.models import PricingModifier

User = get_user_model()

NOW = timezone.make_aware(datetime(2030, 5, 1, 9, 0))
MONDAY = date(2030, 6, 3)


@pytest.fixture
def rate_configs(db):
    install_default_rate_configs()


@pytest.fixture
def office_staff(db):
    return User.objects.create_user(
        username="desk@example.com",
        email="desk@example.com",
        password="pass",
        role=User.STAFF,
    )


def _book(**overrides):
    data = {
        "customer_name": "Dana Lee",
        "customer_email": "Dana@Example.com",
        "tour_date": MONDAY,
        "duration_hours": Decimal("2"),
        "party_size": 2,
        "start_time": time(10, 0),
        "now": NOW,
    }
    data.update(overrides)
    return create_booking(**data)


def test_create_booking_stores_the_quote(rate_configs):
    booking = _book()

    assert booking.booking_number == "WWT-2030-00001"
    assert booking.customer_email == "dana@example.com"
    assert booking.status == Booking.PENDING
    assert booking.payment_status == Booking.UNPAID
    assert booking.hourly_rate == Decimal("85")
    assert booking.billable_hours == Decimal("4")
    assert booking.minimum_applied is True
    assert booking.hours_label == "2hr requested, 4hr min"
    assert booking.subtotal == Decimal("340.00")
    assert booking.tax_amount == Decimal("30.94")
    assert booking.total == Decimal("370.94")
    assert booking.deposit_amount == Decimal("185.47")
    assert booking.balance_due == Decimal("370.94")
    assert booking.pricing_snapshot["total"] == "370.94"
    assert booking.priced_at == NOW


def test_create_booking_opens_a_deposit_intent(rate_configs):
    booking = _book()

    payment = Payment.objects.get(booking=booking)
    assert payment.kind == Payment.DEPOSIT
    assert payment.amount_cents == 18547
    assert booking.payment.stripe_payment_intent == payment.stripe_payment_intent


def test_booking_numbers_increase_within_the_year(rate_configs):
    first = _book()
    second = _book(customer_email="sam@example.com")

    assert first.booking_number == "WWT-2030-00001"
    assert second.booking_number == "WWT-2030-00002"


def test_early_booking_picks_up_active_modifiers(rate_configs):
    PricingModifier.objects.create(
        name="Early bird",
        modifier_type=PricingModifier.DISCOUNT,
        value=Decimal("5"),
        min_advance_days=30,
    )

    booking = _book()

    assert booking.modifier_total == Decimal("-17.00")
    assert booking.tax_amount == Decimal("29.39")
    assert booking.total == Decimal("352.39")
    assert booking.pricing_snapshot["modifiers"][0]["name"] == "Early bird"


def test_pricing_error_leaves_no_booking(rate_configs):
    with pytest.raises(ValidationError):
        _book(party_size=20)

    assert Booking.objects.count() == 0
    assert Payment.objects.count() == 0


def test_missing_rate_configuration_leaves_no_booking(db):
    with pytest.raises(ConfigurationError):
        _book()

    assert Booking.objects.count() == 0


def test_past_dates_are_rejected(rate_configs):
    with pytest.raises(ValidationError):
        _book(tour_date=date(2030, 4, 30))


def test_confirmation_email_is_sent_after_commit(rate_configs, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        booking = _book()

    assert len(mail.outbox) == 1
    message = mail.outbox[0]
    assert message.subject == f"Booking {booking.booking_number} received"
    assert message.to == ["dana@example.com"]
    assert "Hours: 2hr requested, 4hr min" in message.body
    assert "Deposit due: $185.47" in message.body
    assert f"https://app.test/bookings/{booking.booking_number}/pay" in message.body


def test_email_failure_is_logged_not_raised(rate_configs, django_capture_on_commit_callbacks, monkeypatch, caplog):
    def broken_send_mail(*args, **kwargs):
        raise ConnectionRefusedError("smtp down")

    monkeypatch.setattr("bookings.services.emails.send_mail", broken_send_mail)

    with django_capture_on_commit_callbacks(execute=True):
        booking = _book()

    assert Booking.objects.filter(pk=booking.pk).exists()
    assert "Failed to send" in caplog.text


def test_recalculate_with_new_party_size(rate_configs, office_staff):
    booking = _book()

    booking = recalculate_booking(booking, office_staff, party_size=6)

    assert booking.party_size == 6
    assert booking.hourly_rate == Decimal("105.00")
    assert booking.subtotal == Decimal("420.00")
    assert booking.tax_amount == Decimal("38.22")
    assert booking.total == Decimal("458.22")
    assert booking.deposit_amount == Decimal("229.11")
    assert booking.priced_by == office_staff


def test_recalculate_keeps_an_earlier_discount(rate_configs, office_staff):
    booking = recalculate_booking(_book(), office_staff, custom_discount=Decimal("10"))
    assert booking.total == Decimal("333.85")

    booking = recalculate_booking(booking, office_staff, duration_hours=Decimal("3"))

    assert booking.discount_percent == Decimal("10")
    assert booking.total == Decimal("333.85")
    assert booking.requested_hours == Decimal("3")


def test_recalculate_rejects_unknown_fields(rate_configs, office_staff):
    with pytest.raises(ValidationError):
        recalculate_booking(_book(), office_staff, customer_name="Someone Else")


def test_failed_recalculation_keeps_stored_pricing(rate_configs, office_staff):
    booking = _book()

    with pytest.raises(ValidationError):
        recalculate_booking(booking, office_staff, party_size=30)

    booking.refresh_from_db()
    assert booking.party_size == 2
    assert booking.total == Decimal("370.94")


def test_cancelled_booking_cannot_be_repriced(rate_configs, office_staff):
    booking = cancel_booking(_book(), "Changed plans")

    with pytest.raises(ValidationError):
        recalculate_booking(booking, office_staff, party_size=4)


def test_confirm_and_cancel(rate_configs):
    booking = confirm_booking(_book())
    assert booking.status == Booking.CONFIRMED
    assert booking.confirmed_at is not None

    with pytest.raises(ValidationError):
        confirm_booking(booking)

    booking = cancel_booking(booking, "Weather")
    assert booking.status == Booking.CANCELLED
    assert booking.cancellation_reason == "Weather"

    with pytest.raises(ValidationError):
        cancel_booking(booking, "Again")


def test_deposit_then_balance_payments(rate_configs):
    booking = _book()
    deposit = booking.payment

    booking = record_booking_payment(booking, deposit)
    assert booking.payment_status == Booking.DEPOSIT_PAID
    assert booking.status == Booking.CONFIRMED
    assert booking.balance_due == Decimal("185.47")

    balance = Payment.objects.create(
        booking=booking,
        kind=Payment.FULL,
        amount_cents=18547,
        stripe_payment_intent="pi_test_balance",
    )
    booking = record_booking_payment(booking, balance)
    assert booking.payment_status == Booking.PAID
    assert booking.balance_due == Decimal("0")


def test_booking_numbers_come_from_the_yearly_sequence(rate_configs):
    first = _book()
    second = _book(customer_email="sam@example.com")

    assert first.booking_number == "WWT-2030-00001"
    assert second.booking_number == "WWT-2030-00002"
    assert NumberSequence.objects.get(series_key="WWT-2030-").last_value == 2


def test_stripe_outage_cancels_the_new_booking(rate_configs, settings, monkeypatch, django_capture_on_commit_callbacks):
    settings.STRIPE_USE_STUB = False
    settings.STRIPE_SECRET_KEY = "sk_test_123"
    monkeypatch.setattr(stripe, "api_key", None)

    def failing_create(**kwargs):
        raise stripe.APIConnectionError("Network is unreachable")

    monkeypatch.setattr(stripe.PaymentIntent, "create", staticmethod(failing_create))

    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        with pytest.raises(PaymentUnavailableError):
            _book()

    booking = Booking.objects.get()
    assert booking.status == Booking.CANCELLED
    assert booking.cancellation_reason == "Deposit payment could not be started."
    assert not Payment.objects.exists()
    assert callbacks == []
    assert mail.outbox == []
