from datetime import date
from decimal import Decimal

import pytest

from core.errors import ConfigurationError
from rates.defaults import install_default_rate_configs
from rates.models import PricingModifier
from rates.modifiers import applicable_modifiers, combine_modifiers, modifier_matches
from rates.pricing import quote_for_request

MONDAY = date(2030, 6, 3)
SATURDAY = date(2030, 6, 8)
BOOKED_ON = date(2030, 5, 1)


def _modifier(**overrides):
    values = {
        "name": "Modifier",
        "modifier_type": PricingModifier.DISCOUNT,
        "value_type": PricingModifier.PERCENTAGE,
        "value": Decimal("10"),
    }
    values.update(overrides)
    return PricingModifier.objects.create(**values)


def _matches(modifier, *, tour_date=MONDAY, party_size=4, advance_days=33, service_key="wine_tours"):
    return modifier_matches(
        modifier,
        service_key=service_key,
        tour_date=tour_date,
        party_size=party_size,
        advance_days=advance_days,
    )


@pytest.mark.django_db
def test_modifier_without_conditions_matches_everything():
    assert _matches(_modifier())


@pytest.mark.django_db
def test_inactive_modifier_never_matches():
    assert not _matches(_modifier(is_active=False))


@pytest.mark.django_db
def test_date_range_is_inclusive():
    modifier = _modifier(start_date=MONDAY, end_date=SATURDAY)

    assert _matches(modifier, tour_date=MONDAY)
    assert _matches(modifier, tour_date=SATURDAY)
    assert not _matches(modifier, tour_date=date(2030, 6, 2))
    assert not _matches(modifier, tour_date=date(2030, 6, 9))


@pytest.mark.django_db
def test_advance_booking_window():
    early_bird = _modifier(min_advance_days=30)
    last_minute = _modifier(max_advance_days=2)

    assert _matches(early_bird, advance_days=30)
    assert not _matches(early_bird, advance_days=29)
    assert _matches(last_minute, advance_days=2)
    assert not _matches(last_minute, advance_days=3)


@pytest.mark.django_db
def test_party_size_and_service_and_weekday_conditions():
    modifier = _modifier(
        min_party_size=6,
        max_party_size=10,
        service_keys=["wine_tours"],
        weekdays=["Saturday"],
    )

    assert _matches(modifier, tour_date=SATURDAY, party_size=6)
    assert not _matches(modifier, tour_date=SATURDAY, party_size=5)
    assert not _matches(modifier, tour_date=SATURDAY, party_size=11)
    assert not _matches(modifier, tour_date=MONDAY, party_size=8)
    assert not _matches(modifier, tour_date=SATURDAY, party_size=8, service_key="wait_time")


@pytest.mark.django_db
def test_unknown_weekday_is_configuration_error():
    modifier = _modifier(weekdays=["caturday"])

    with pytest.raises(ConfigurationError):
        _matches(modifier)


@pytest.mark.django_db
def test_applicable_modifiers_uses_booking_date_for_advance_days():
    early_bird = _modifier(name="Early bird", min_advance_days=30)
    _modifier(name="Off", is_active=False)

    assert applicable_modifiers(
        service_key="wine_tours", tour_date=MONDAY, party_size=4, booked_on=BOOKED_ON
    ) == [early_bird]
    assert applicable_modifiers(
        service_key="wine_tours", tour_date=MONDAY, party_size=4, booked_on=date(2030, 5, 20)
    ) == []


@pytest.mark.django_db
def test_non_exclusive_modifiers_apply_additively_against_same_base():
    discount = _modifier(name="Ten off", priority=5)
    surcharge = _modifier(
        name="Peak",
        modifier_type=PricingModifier.SURCHARGE,
        value_type=PricingModifier.FLAT,
        value=Decimal("25"),
        priority=1,
    )

    applied, total = combine_modifiers([surcharge, discount], Decimal("400.00"))

    assert [item.name for item in applied] == ["Ten off", "Peak"]
    assert [item.amount for item in applied] == [Decimal("-40.00"), Decimal("25.00")]
    assert total == Decimal("-15.00")


def test_modifier_sign_follows_its_type_not_its_value():
    discount = PricingModifier(
        name="Negative discount",
        modifier_type=PricingModifier.DISCOUNT,
        value_type=PricingModifier.FLAT,
        value=Decimal("-30"),
    )
    surcharge = PricingModifier(
        name="Negative surcharge",
        modifier_type=PricingModifier.SURCHARGE,
        value_type=PricingModifier.FLAT,
        value=Decimal("-12.50"),
    )

    applied, total = combine_modifiers([discount, surcharge], Decimal("200.00"))

    assert [item.amount for item in applied] == [Decimal("-30.00"), Decimal("12.50")]
    assert total == Decimal("-17.50")


def test_unknown_modifier_type_is_configuration_error():
    rebate = PricingModifier(
        name="Rebate",
        modifier_type="rebate",
        value_type=PricingModifier.FLAT,
        value=Decimal("10"),
    )

    with pytest.raises(ConfigurationError):
        combine_modifiers([rebate], Decimal("100.00"))


@pytest.mark.django_db
def test_highest_priority_exclusive_modifier_overrides_others():
    _modifier(name="Ten off", priority=50)
    _modifier(name="Staff rate", value=Decimal("30"), is_exclusive=True, priority=10)
    _modifier(name="Partner rate", value=Decimal("20"), is_exclusive=True, priority=20)

    applied, total = combine_modifiers(list(PricingModifier.objects.all()), Decimal("100.00"))

    assert [item.name for item in applied] == ["Partner rate"]
    assert total == Decimal("-20.00")


@pytest.mark.django_db
def test_quote_for_request_applies_matching_modifiers():
    install_default_rate_configs()
    _modifier(name="Early bird", min_advance_days=30, value=Decimal("5"))

    quote = quote_for_request(
        service_key="wine_tours",
        tour_date=MONDAY,
        duration_hours=4,
        party_size=2,
        booked_on=BOOKED_ON,
    )

    assert quote.breakdown.subtotal == Decimal("340.00")
    assert quote.modifier_total == Decimal("-17.00")
    assert quote.adjusted_subtotal == Decimal("323.00")
    assert quote.tax_amount == Decimal("29.39")
    assert quote.total == Decimal("352.39")
    assert quote.as_dict()["modifiers"][0]["name"] == "Early bird"
