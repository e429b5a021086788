import copy

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from rates import defaults
from rates.defaults import install_default_rate_configs
from rates.models import PricingModifier, RateChangeLog, RateConfig

User = get_user_model()


@pytest.fixture
def client():
    return APIClient()


@pytest.fixture
def rate_configs(db):
    install_default_rate_configs()


@pytest.fixture
def rates_admin(db):
    return User.objects.create_user(
        username="rates@example.com",
        email="rates@example.com",
        password="pass",
        role=User.ADMIN,
    )


@pytest.fixture
def office_staff(db):
    return User.objects.create_user(
        username="desk@example.com",
        email="desk@example.com",
        password="pass",
        role=User.STAFF,
    )


def test_calculate_price_returns_envelope(client, rate_configs):
    response = client.post(
        "/api/pricing/calculate/",
        {"date": "2030-06-03", "duration_hours": "2", "party_size": 2, "custom_discount": "10"},
        format="json",
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    data = body["data"]
    assert data["billable_hours"] == "4"
    assert data["hours_label"] == "2hr requested, 4hr min"
    assert data["subtotal"] == "340.00"
    assert data["discount_amount"] == "34.00"
    assert data["tax_amount"] == "27.85"
    assert data["total"] == "333.85"
    assert data["deposit_amount"] == "166.93"


def test_calculate_price_for_wait_time(client, rate_configs):
    response = client.post(
        "/api/pricing/calculate/",
        {"service_key": "wait_time", "date": "2030-06-08", "duration_hours": "1.5", "party_size": 6},
        format="json",
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["hourly_rate"] == "105.00"
    assert data["subtotal"] == "157.50"


def test_calculate_price_rejects_oversized_party(client, rate_configs):
    response = client.post(
        "/api/pricing/calculate/",
        {"date": "2030-06-03", "duration_hours": "4", "party_size": 20},
        format="json",
    )

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["code"] == "validation_error"
    assert "party_size" in body["error"]


def test_calculate_price_rejects_missing_fields(client, rate_configs):
    response = client.post("/api/pricing/calculate/", {"party_size": 2}, format="json")

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert {"date", "duration_hours"} <= set(body["details"])


def test_hourly_endpoint_rejects_transfer_key(client, rate_configs):
    response = client.post(
        "/api/pricing/calculate/",
        {"service_key": "transfers", "date": "2030-06-03", "duration_hours": "4", "party_size": 2},
        format="json",
    )

    assert response.status_code == 400
    assert response.json()["error"] == "service_key: Not an hourly service."


def test_transfer_quote_applies_transfer_modifiers(client, rate_configs):
    PricingModifier.objects.create(
        name="Airport promo",
        modifier_type=PricingModifier.DISCOUNT,
        value=10,
        service_keys=["transfers"],
    )

    response = client.post(
        "/api/pricing/transfer/",
        {"route": "walla_to_seatac", "date": "2030-06-03", "party_size": 3},
        format="json",
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["route"] == "walla_to_seatac"
    assert data["subtotal"] == "850.00"
    assert data["modifier_total"] == "-85.00"
    assert data["tax_amount"] == "69.62"
    assert data["total"] == "834.62"


def test_local_transfer_quote_requires_miles(client, rate_configs):
    response = client.post(
        "/api/pricing/transfer/",
        {"route": "local", "date": "2030-06-03", "party_size": 3},
        format="json",
    )

    assert response.status_code == 400
    assert response.json()["details"] == {"miles": "Distance in miles is required for local transfers."}


def test_missing_configuration_is_opaque_server_error(client, db):
    response = client.post(
        "/api/pricing/calculate/",
        {"date": "2030-06-03", "duration_hours": "4", "party_size": 2},
        format="json",
    )

    assert response.status_code == 500
    body = response.json()
    assert body == {
        "success": False,
        "error": "Pricing is temporarily unavailable. Please try again later.",
        "code": "configuration_error",
    }


def test_rate_admin_requires_authentication(client, rate_configs):
    response = client.get("/api/admin/rates/")

    assert response.status_code == 401
    assert response.json()["success"] is False


def test_rate_admin_requires_rates_capability(client, rate_configs, office_staff):
    client.force_authenticate(office_staff)

    response = client.get("/api/admin/rates/")

    assert response.status_code == 403


def test_rate_admin_lists_and_retrieves(client, rate_configs, rates_admin):
    client.force_authenticate(rates_admin)

    listing = client.get("/api/admin/rates/")
    detail = client.get("/api/admin/rates/wine_tours/")

    assert listing.status_code == 200
    assert [row["config_key"] for row in listing.json()["data"]] == [
        "deposits_and_fees",
        "transfers",
        "wait_time",
        "wine_tours",
    ]
    assert detail.json()["data"]["config_value"]["max_party_size"] == 14


def test_rate_admin_unknown_key_is_not_found(client, rate_configs, rates_admin):
    client.force_authenticate(rates_admin)

    response = client.get("/api/admin/rates/helicopter/")

    assert response.status_code == 404
    assert response.json()["code"] == "not_found"


def test_rate_update_requires_reason(client, rate_configs, rates_admin):
    client.force_authenticate(rates_admin)

    response = client.put(
        "/api/admin/rates/deposits_and_fees/",
        {"config_value": {"tax_rate": "0.09", "deposit_percentage": "0.5"}},
        format="json",
    )

    assert response.status_code == 400
    assert "change_reason" in response.json()["details"]


def test_rate_update_and_history(client, rate_configs, rates_admin):
    client.force_authenticate(rates_admin)
    value = copy.deepcopy(defaults.WINE_TOURS)
    value["tiers"][-1]["rates"]["thu_sat"] = "155.00"

    response = client.put(
        "/api/admin/rates/wine_tours/",
        {"config_value": value, "change_reason": "Large-group weekend demand"},
        format="json",
    )
    history = client.get("/api/admin/rates/wine_tours/history/")

    assert response.status_code == 200
    assert response.json()["data"]["updated_by_email"] == "rates@example.com"
    assert RateConfig.objects.get(config_key="wine_tours").config_value["tiers"][-1]["rates"]["thu_sat"] == "155.00"
    entries = history.json()["data"]
    assert len(entries) == 1
    assert entries[0]["change_reason"] == "Large-group weekend demand"
    assert entries[0]["changed_by_email"] == "rates@example.com"
    assert RateChangeLog.objects.count() == 1


def test_rate_update_rejects_invalid_shape(client, rate_configs, rates_admin):
    client.force_authenticate(rates_admin)

    response = client.put(
        "/api/admin/rates/wine_tours/",
        {"config_value": {"tiers": []}, "change_reason": "oops"},
        format="json",
    )

    assert response.status_code == 400
    assert "config_value" in response.json()["details"]


def test_pricing_modifier_crud_and_toggle(client, rates_admin):
    client.force_authenticate(rates_admin)

    created = client.post(
        "/api/admin/pricing-modifiers/",
        {
            "name": "Weekday early bird",
            "modifier_type": PricingModifier.DISCOUNT,
            "value_type": PricingModifier.PERCENTAGE,
            "value": "10.00",
            "min_advance_days": 30,
            "weekdays": ["Monday", "tuesday"],
        },
        format="json",
    )
    assert created.status_code == 201
    modifier_id = created.json()["data"]["id"]
    assert created.json()["data"]["weekdays"] == ["monday", "tuesday"]

    toggled = client.post(f"/api/admin/pricing-modifiers/{modifier_id}/toggle/")
    assert toggled.status_code == 200
    assert toggled.json()["data"]["is_active"] is False

    listing = client.get("/api/admin/pricing-modifiers/")
    assert [row["name"] for row in listing.json()["data"]] == ["Weekday early bird"]

    deleted = client.delete(f"/api/admin/pricing-modifiers/{modifier_id}/")
    assert deleted.status_code == 204
    assert not PricingModifier.objects.exists()


def test_pricing_modifier_validation(client, rates_admin):
    client.force_authenticate(rates_admin)

    response = client.post(
        "/api/admin/pricing-modifiers/",
        {
            "name": "Broken",
            "modifier_type": PricingModifier.SURCHARGE,
            "value_type": PricingModifier.PERCENTAGE,
            "value": "150",
            "min_party_size": 8,
            "max_party_size": 4,
        },
        format="json",
    )

    assert response.status_code == 400
    assert response.json()["success"] is False
