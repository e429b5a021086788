from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional, Sequence, Tuple, Union

from core.errors import ConfigurationError, ValidationError
from core.money import ZERO, format_hours, format_money, quantize_money, to_decimal

from .config import (
    LOCAL_TRANSFER,
    DayType,
    FeeSchedule,
    HourlyRateCard,
    RateTier,
    TransferRates,
    load_fee_schedule,
    load_rate_card,
    load_transfer_rates,
)
from .models import PricingModifier, RateConfig
from .modifiers import AppliedModifier, applicable_modifiers, combine_modifiers

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class PriceBreakdown:
    service_key: str
    tour_date: date
    party_size: int
    day_type: str
    day_type_label: str
    rate_tier: str
    hourly_rate: Decimal
    requested_hours: Decimal
    minimum_hours: Decimal
    billable_hours: Decimal
    subtotal: Decimal

    @property
    def minimum_applied(self) -> bool:
        return self.billable_hours > self.requested_hours

    @property
    def hours_label(self) -> str:
        if self.minimum_applied:
            return (
                f"{format_hours(self.requested_hours)}hr requested, "
                f"{format_hours(self.minimum_hours)}hr min"
            )
        return f"{format_hours(self.billable_hours)}hr"

    def as_dict(self) -> Dict[str, Any]:
        return {
            "service_key": self.service_key,
            "tour_date": self.tour_date.isoformat(),
            "party_size": self.party_size,
            "day_type": self.day_type,
            "day_type_label": self.day_type_label,
            "rate_tier": self.rate_tier,
            "hourly_rate": format_money(self.hourly_rate),
            "requested_hours": format_hours(self.requested_hours),
            "minimum_hours": format_hours(self.minimum_hours),
            "billable_hours": format_hours(self.billable_hours),
            "minimum_applied": self.minimum_applied,
            "hours_label": self.hours_label,
            "subtotal": format_money(self.subtotal),
        }


@dataclass(frozen=True)
class Quote:
    breakdown: Union[PriceBreakdown, "TransferBreakdown"]
    modifiers: Tuple[AppliedModifier, ...]
    modifier_total: Decimal
    adjusted_subtotal: Decimal
    discount_percent: Decimal
    discount_amount: Decimal
    taxable_amount: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total: Decimal
    deposit_percentage: Decimal
    deposit_amount: Decimal

    @property
    def balance_due(self) -> Decimal:
        return self.total - self.deposit_amount

    def as_dict(self) -> Dict[str, Any]:
        data = self.breakdown.as_dict()
        data.update(
            {
                "modifiers": [modifier.as_dict() for modifier in self.modifiers],
                "modifier_total": format_money(self.modifier_total),
                "adjusted_subtotal": format_money(self.adjusted_subtotal),
                "discount_percent": str(self.discount_percent),
                "discount_amount": format_money(self.discount_amount),
                "taxable_amount": format_money(self.taxable_amount),
                "tax_rate": str(self.tax_rate),
                "tax_amount": format_money(self.tax_amount),
                "total": format_money(self.total),
                "deposit_percentage": str(self.deposit_percentage),
                "deposit_amount": format_money(self.deposit_amount),
                "balance_due": format_money(self.balance_due),
            }
        )
        return data


def resolve_day_type(card: HourlyRateCard, tour_date: date) -> DayType:
    """Explicit dates (holidays, seasonal days) win over the weekly pattern."""
    for day_type in card.day_types:
        if day_type.matches_date(tour_date):
            return day_type
    for day_type in card.day_types:
        if day_type.matches_weekday(tour_date):
            return day_type
    raise ConfigurationError(
        f"No day type in '{card.key}' covers {tour_date:%A}.",
        context={"config_key": card.key, "tour_date": tour_date.isoformat()},
    )


def resolve_tier(card: HourlyRateCard, party_size: int) -> RateTier:
    for tier in card.tiers:
        if tier.contains(party_size):
            return tier
    raise ConfigurationError(
        f"No rate tier in '{card.key}' covers a party of {party_size}.",
        context={"config_key": card.key, "party_size": party_size},
    )


def _validated_inputs(card: HourlyRateCard, tour_date, duration_hours, party_size):
    if isinstance(tour_date, datetime):
        tour_date = tour_date.date()
    if not isinstance(tour_date, date):
        raise ValidationError({"date": "A valid tour date is required."})

    if isinstance(party_size, bool) or not isinstance(party_size, int):
        raise ValidationError({"party_size": "Party size must be a whole number."})
    if party_size < 1 or party_size > card.max_party_size:
        raise ValidationError(
            {"party_size": f"Party size must be between 1 and {card.max_party_size}."}
        )

    try:
        hours = to_decimal(duration_hours)
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError({"duration_hours": "Duration must be a number of hours."})
    if not hours.is_finite() or hours <= 0 or hours > card.max_duration_hours:
        raise ValidationError(
            {
                "duration_hours": (
                    f"Duration must be greater than 0 and at most "
                    f"{format_hours(card.max_duration_hours)} hours."
                )
            }
        )
    return tour_date, hours, party_size


def calculate_price(
    card: HourlyRateCard,
    tour_date: date,
    duration_hours,
    party_size: int,
) -> PriceBreakdown:
    """
    Price an hourly service for a date, duration and party size.

    The requested duration is raised to the minimum for the resolved tier and
    day type; callers can tell from ``minimum_applied`` that this happened.
    """

    tour_date, requested_hours, party_size = _validated_inputs(
        card, tour_date, duration_hours, party_size
    )
    day_type = resolve_day_type(card, tour_date)
    tier = resolve_tier(card, party_size)

    hourly_rate = tier.rates.get(day_type.key)
    if hourly_rate is None:
        raise ConfigurationError(
            f"Tier '{tier.label}' in '{card.key}' has no rate for day type '{day_type.key}'.",
            context={"config_key": card.key, "tier": tier.key, "day_type": day_type.key},
        )

    minimum_hours = tier.minimum_hours.get(day_type.key)
    if minimum_hours is None:
        minimum_hours = day_type.minimum_hours
    if minimum_hours is None:
        minimum_hours = card.default_minimum_hours

    billable_hours = max(requested_hours, minimum_hours)
    return PriceBreakdown(
        service_key=card.key,
        tour_date=tour_date,
        party_size=party_size,
        day_type=day_type.key,
        day_type_label=day_type.label,
        rate_tier=tier.label,
        hourly_rate=hourly_rate,
        requested_hours=requested_hours,
        minimum_hours=minimum_hours,
        billable_hours=billable_hours,
        subtotal=quantize_money(hourly_rate * billable_hours),
    )


def _discount_percent(custom_discount) -> Decimal:
    if custom_discount is None or custom_discount == "":
        return ZERO
    try:
        percent = to_decimal(custom_discount)
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError({"custom_discount": "Discount must be a percentage."})
    if not percent.is_finite() or percent < 0 or percent > HUNDRED:
        raise ValidationError({"custom_discount": "Discount must be between 0 and 100."})
    return percent


def build_quote(
    breakdown: Union[PriceBreakdown, "TransferBreakdown"],
    fees: FeeSchedule,
    modifiers: Sequence[PricingModifier] = (),
    custom_discount=None,
) -> Quote:
    """Apply modifiers, the custom discount, tax and deposit to a price breakdown."""
    percent = _discount_percent(custom_discount)
    applied, modifier_total = combine_modifiers(modifiers, breakdown.subtotal)

    adjusted = max(breakdown.subtotal + modifier_total, ZERO)
    discount_amount = quantize_money(adjusted * percent / HUNDRED)
    taxable = adjusted - discount_amount
    tax_amount = quantize_money(taxable * fees.tax_rate)
    total = taxable + tax_amount
    deposit_amount = quantize_money(total * fees.deposit_percentage)

    return Quote(
        breakdown=breakdown,
        modifiers=tuple(applied),
        modifier_total=modifier_total,
        adjusted_subtotal=adjusted,
        discount_percent=percent,
        discount_amount=discount_amount,
        taxable_amount=taxable,
        tax_rate=fees.tax_rate,
        tax_amount=tax_amount,
        total=total,
        deposit_percentage=fees.deposit_percentage,
        deposit_amount=deposit_amount,
    )


def quote_for_request(
    *,
    service_key: str,
    tour_date: date,
    duration_hours,
    party_size: int,
    custom_discount=None,
    booked_on: Optional[date] = None,
    apply_modifiers: bool = True,
) -> Quote:
    card = load_rate_card(service_key)
    fees = load_fee_schedule()
    breakdown = calculate_price(card, tour_date, duration_hours, party_size)
    modifiers = []
    if apply_modifiers:
        modifiers = applicable_modifiers(
            service_key=service_key,
            tour_date=breakdown.tour_date,
            party_size=breakdown.party_size,
            booked_on=booked_on,
        )
    return build_quote(breakdown, fees, modifiers, custom_discount)


@dataclass(frozen=True)
class TransferBreakdown:
    service_key: str
    tour_date: date
    party_size: int
    route: str
    route_label: str
    miles: Optional[Decimal]
    extra_miles: Decimal
    subtotal: Decimal

    def as_dict(self) -> Dict[str, Any]:
        return {
            "service_key": self.service_key,
            "tour_date": self.tour_date.isoformat(),
            "party_size": self.party_size,
            "route": self.route,
            "route_label": self.route_label,
            "miles": format_hours(self.miles) if self.miles is not None else None,
            "extra_miles": format_hours(self.extra_miles),
            "subtotal": format_money(self.subtotal),
        }


def _transfer_miles(rates: TransferRates, miles) -> Decimal:
    if miles is None or miles == "":
        raise ValidationError({"miles": "Distance in miles is required for local transfers."})
    try:
        value = to_decimal(miles)
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError({"miles": "Distance must be a number of miles."})
    if not value.is_finite() or value <= 0 or value > rates.local_max_miles:
        raise ValidationError(
            {"miles": f"Distance must be greater than 0 and at most {format_hours(rates.local_max_miles)} miles."}
        )
    return value


def calculate_transfer_price(
    rates: TransferRates,
    tour_date: date,
    route: str,
    party_size: int,
    miles=None,
) -> TransferBreakdown:
    """
    Price a transfer. Airport routes are flat; local transfers charge the base
    rate plus ``per_mile`` for every mile beyond the included ``base_miles``.
    """

    if isinstance(tour_date, datetime):
        tour_date = tour_date.date()
    if not isinstance(tour_date, date):
        raise ValidationError({"date": "A valid transfer date is required."})
    if isinstance(party_size, bool) or not isinstance(party_size, int):
        raise ValidationError({"party_size": "Party size must be a whole number."})
    if party_size < 1 or party_size > rates.max_party_size:
        raise ValidationError(
            {"party_size": f"Party size must be between 1 and {rates.max_party_size}."}
        )

    if route == LOCAL_TRANSFER:
        distance = _transfer_miles(rates, miles)
        extra_miles = max(distance - rates.local_base_miles, ZERO)
        return TransferBreakdown(
            service_key=rates.key,
            tour_date=tour_date,
            party_size=party_size,
            route=route,
            route_label="Local transfer",
            miles=distance,
            extra_miles=extra_miles,
            subtotal=quantize_money(rates.local_base_rate + extra_miles * rates.local_per_mile),
        )

    flat = rates.routes.get(route)
    if flat is None:
        raise ValidationError({"route": f"Unknown transfer route '{route}'."})
    return TransferBreakdown(
        service_key=rates.key,
        tour_date=tour_date,
        party_size=party_size,
        route=route,
        route_label=flat.label,
        miles=None,
        extra_miles=ZERO,
        subtotal=quantize_money(flat.price),
    )


def quote_for_transfer(
    *,
    route: str,
    tour_date: date,
    party_size: int,
    miles=None,
    custom_discount=None,
    booked_on: Optional[date] = None,
) -> Quote:
    rates = load_transfer_rates()
    fees = load_fee_schedule()
    breakdown = calculate_transfer_price(rates, tour_date, route, party_size, miles)
    modifiers = applicable_modifiers(
        service_key=RateConfig.TRANSFERS,
        tour_date=breakdown.tour_date,
        party_size=breakdown.party_size,
        booked_on=booked_on,
    )
    return build_quote(breakdown, fees, modifiers, custom_discount)
