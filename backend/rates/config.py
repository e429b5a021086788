"""
Read-through access to rate configuration rows.

Every call re-reads the database row and nothing is cached in-process, so a
rate change is visible to the very next price calculation.
Values are parsed into frozen dataclasses before the pricing engine sees them,
and a row that does not parse raises ``ConfigurationError``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional, Tuple

from django.db import transaction

from core.errors import ConfigurationError, NotFoundError, ValidationError
from core.money import to_decimal

from .models import RateChangeLog, RateConfig

logger = logging.getLogger(__name__)

LOCAL_TRANSFER = "local"

WEEKDAY_NAMES = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


@dataclass(frozen=True)
class DayType:
    key: str
    label: str
    minimum_hours: Optional[Decimal] = None
    weekdays: frozenset = frozenset()
    dates: frozenset = frozenset()

    def matches_date(self, value: date) -> bool:
        return value in self.dates

    def matches_weekday(self, value: date) -> bool:
        return WEEKDAY_NAMES[value.weekday()] in self.weekdays


@dataclass(frozen=True)
class RateTier:
    key: str
    label: str
    min_guests: int
    max_guests: int
    rates: Dict[str, Decimal]
    minimum_hours: Dict[str, Decimal] = field(default_factory=dict)

    def contains(self, party_size: int) -> bool:
        return self.min_guests <= party_size <= self.max_guests


@dataclass(frozen=True)
class HourlyRateCard:
    key: str
    day_types: Tuple[DayType, ...]
    tiers: Tuple[RateTier, ...]
    max_party_size: int
    max_duration_hours: Decimal
    default_minimum_hours: Decimal


@dataclass(frozen=True)
class FeeSchedule:
    tax_rate: Decimal
    deposit_percentage: Decimal


@dataclass(frozen=True)
class TransferRoute:
    key: str
    label: str
    price: Decimal


@dataclass(frozen=True)
class TransferRates:
    """Flat airport routes plus distance-priced local transfers."""

    key: str
    routes: Dict[str, TransferRoute]
    local_base_rate: Decimal
    local_per_mile: Decimal
    local_base_miles: Decimal
    local_max_miles: Decimal
    max_party_size: int


class _ShapeError(Exception):
    pass


def _decimal(value: Any, label: str) -> Decimal:
    try:
        result = to_decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        raise _ShapeError(f"{label} must be a number.")
    if not result.is_finite():
        raise _ShapeError(f"{label} must be a finite number.")
    return result


def _positive_int(value: Any, label: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise _ShapeError(f"{label} must be a positive integer.")
    return value


def _parse_day_type(raw: Any, index: int) -> DayType:
    if not isinstance(raw, dict):
        raise _ShapeError(f"day_types[{index}] must be an object.")
    key = raw.get("key")
    if not key or not isinstance(key, str):
        raise _ShapeError(f"day_types[{index}].key is required.")

    weekdays = raw.get("weekdays") or []
    if not isinstance(weekdays, list):
        raise _ShapeError(f"day_types[{index}].weekdays must be a list.")
    normalized_weekdays = set()
    for name in weekdays:
        if not isinstance(name, str) or name.lower() not in WEEKDAY_NAMES:
            raise _ShapeError(f"day_types[{index}] has an unknown weekday {name!r}.")
        normalized_weekdays.add(name.lower())

    raw_dates = raw.get("dates") or []
    if not isinstance(raw_dates, list):
        raise _ShapeError(f"day_types[{index}].dates must be a list.")
    parsed_dates = set()
    for raw_date in raw_dates:
        try:
            parsed_dates.add(date.fromisoformat(str(raw_date)))
        except ValueError:
            raise _ShapeError(f"day_types[{index}] has an invalid date {raw_date!r}.")

    if not normalized_weekdays and not parsed_dates:
        raise _ShapeError(f"day_types[{index}] must list weekdays or dates.")

    minimum = raw.get("minimum_hours")
    return DayType(
        key=key,
        label=raw.get("label") or key,
        minimum_hours=_decimal(minimum, f"day_types[{index}].minimum_hours") if minimum is not None else None,
        weekdays=frozenset(normalized_weekdays),
        dates=frozenset(parsed_dates),
    )


def _parse_tier(raw: Any, index: int, day_type_keys: set) -> RateTier:
    if not isinstance(raw, dict):
        raise _ShapeError(f"tiers[{index}] must be an object.")
    min_guests = _positive_int(raw.get("min_guests"), f"tiers[{index}].min_guests")
    max_guests = _positive_int(raw.get("max_guests"), f"tiers[{index}].max_guests")
    if max_guests < min_guests:
        raise _ShapeError(f"tiers[{index}].max_guests must be >= min_guests.")

    raw_rates = raw.get("rates")
    if not isinstance(raw_rates, dict) or not raw_rates:
        raise _ShapeError(f"tiers[{index}].rates must map day types to hourly rates.")
    rates = {}
    for day_key, amount in raw_rates.items():
        if day_key not in day_type_keys:
            raise _ShapeError(f"tiers[{index}].rates references unknown day type {day_key!r}.")
        rate = _decimal(amount, f"tiers[{index}].rates.{day_key}")
        if rate <= 0:
            raise _ShapeError(f"tiers[{index}].rates.{day_key} must be greater than zero.")
        rates[day_key] = rate

    raw_minimums = raw.get("minimum_hours") or {}
    if not isinstance(raw_minimums, dict):
        raise _ShapeError(f"tiers[{index}].minimum_hours must map day types to hours.")
    minimums = {
        day_key: _decimal(hours, f"tiers[{index}].minimum_hours.{day_key}")
        for day_key, hours in raw_minimums.items()
    }

    label = raw.get("label") or f"{min_guests}-{max_guests} guests"
    return RateTier(
        key=raw.get("key") or f"{min_guests}-{max_guests}",
        label=label,
        min_guests=min_guests,
        max_guests=max_guests,
        rates=rates,
        minimum_hours=minimums,
    )


def parse_hourly_rate_card(key: str, value: Any) -> HourlyRateCard:
    if not isinstance(value, dict):
        raise _ShapeError("Rate card must be an object.")

    raw_day_types = value.get("day_types")
    if not isinstance(raw_day_types, list) or not raw_day_types:
        raise _ShapeError("day_types must be a non-empty list.")
    day_types = tuple(_parse_day_type(raw, idx) for idx, raw in enumerate(raw_day_types))
    day_type_keys = {day_type.key for day_type in day_types}
    if len(day_type_keys) != len(day_types):
        raise _ShapeError("day_types keys must be unique.")

    raw_tiers = value.get("tiers")
    if not isinstance(raw_tiers, list) or not raw_tiers:
        raise _ShapeError("tiers must be a non-empty list.")
    tiers = tuple(
        sorted(
            (_parse_tier(raw, idx, day_type_keys) for idx, raw in enumerate(raw_tiers)),
            key=lambda tier: tier.min_guests,
        )
    )
    if tiers[0].min_guests != 1:
        raise _ShapeError(f"Tier {tiers[0].label} must start at 1 guest.")
    for previous, current in zip(tiers, tiers[1:]):
        if current.min_guests <= previous.max_guests:
            raise _ShapeError(f"Tier {current.label} overlaps tier {previous.label}.")
        if current.min_guests > previous.max_guests + 1:
            raise _ShapeError(
                f"No tier covers {previous.max_guests + 1}-{current.min_guests - 1} guests."
            )
    for tier in tiers:
        missing = sorted(day_type_keys - set(tier.rates))
        if missing:
            raise _ShapeError(f"Tier {tier.label} has no rate for {', '.join(missing)}.")

    uncovered = [
        name for name in WEEKDAY_NAMES
        if not any(name in day_type.weekdays for day_type in day_types)
    ]
    if uncovered:
        raise _ShapeError(f"No day type covers {', '.join(uncovered)}.")

    max_party_size = _positive_int(
        value.get("max_party_size", tiers[-1].max_guests), "max_party_size"
    )
    if max_party_size > tiers[-1].max_guests:
        raise _ShapeError(
            f"max_party_size {max_party_size} exceeds the largest tier ({tiers[-1].max_guests} guests)."
        )
    max_duration = _decimal(value.get("max_duration_hours", 12), "max_duration_hours")
    if max_duration <= 0:
        raise _ShapeError("max_duration_hours must be greater than zero.")
    default_minimum = _decimal(value.get("default_minimum_hours", 0), "default_minimum_hours")
    if default_minimum < 0:
        raise _ShapeError("default_minimum_hours cannot be negative.")

    return HourlyRateCard(
        key=key,
        day_types=day_types,
        tiers=tiers,
        max_party_size=max_party_size,
        max_duration_hours=max_duration,
        default_minimum_hours=default_minimum,
    )


def parse_fee_schedule(value: Any) -> FeeSchedule:
    if not isinstance(value, dict):
        raise _ShapeError("Fee schedule must be an object.")
    tax_rate = _decimal(value.get("tax_rate"), "tax_rate")
    deposit = _decimal(value.get("deposit_percentage"), "deposit_percentage")
    for label, amount in (("tax_rate", tax_rate), ("deposit_percentage", deposit)):
        if amount < 0 or amount > 1:
            raise _ShapeError(f"{label} must be between 0 and 1.")
    return FeeSchedule(tax_rate=tax_rate, deposit_percentage=deposit)



def _positive_decimal(value: Any, label: str) -> Decimal:
    result = _decimal(value, label)
    if result <= 0:
        raise _ShapeError(f"{label} must be greater than zero.")
    return result


def parse_transfer_rates(key: str, value: Any) -> TransferRates:
    if not isinstance(value, dict):
        raise _ShapeError("Transfer rates must be an object.")

    raw_routes = value.get("routes") or {}
    if not isinstance(raw_routes, dict):
        raise _ShapeError("routes must map route keys to prices.")
    routes = {}
    for route_key, raw in raw_routes.items():
        if route_key == LOCAL_TRANSFER:
            raise _ShapeError(f"'{LOCAL_TRANSFER}' is reserved for distance-priced transfers.")
        if not isinstance(raw, dict):
            raise _ShapeError(f"routes.{route_key} must be an object.")
        routes[route_key] = TransferRoute(
            key=route_key,
            label=raw.get("label") or route_key,
            price=_positive_decimal(raw.get("price"), f"routes.{route_key}.price"),
        )

    local = value.get("local")
    if not isinstance(local, dict):
        raise _ShapeError("local must be an object.")
    base_miles = _decimal(local.get("base_miles", 0), "local.base_miles")
    if base_miles < 0:
        raise _ShapeError("local.base_miles cannot be negative.")
    per_mile = _decimal(local.get("per_mile"), "local.per_mile")
    if per_mile < 0:
        raise _ShapeError("local.per_mile cannot be negative.")
    max_miles = _positive_decimal(local.get("max_miles", 100), "local.max_miles")
    if max_miles < base_miles:
        raise _ShapeError("local.max_miles must be at least local.base_miles.")

    return TransferRates(
        key=key,
        routes=routes,
        local_base_rate=_positive_decimal(local.get("base_rate"), "local.base_rate"),
        local_per_mile=per_mile,
        local_base_miles=base_miles,
        local_max_miles=max_miles,
        max_party_size=_positive_int(value.get("max_party_size"), "max_party_size"),
    )


def validate_config_value(key: str, value: Any) -> None:
    """Raise ``ValidationError`` if ``value`` is not a valid shape for ``key``."""
    try:
        _parse_for_key(key, value)
    except _ShapeError as exc:
        raise ValidationError({"config_value": str(exc)})


def _parse_for_key(key: str, value: Any):
    if key == RateConfig.DEPOSITS_AND_FEES:
        return parse_fee_schedule(value)
    if key == RateConfig.TRANSFERS:
        return parse_transfer_rates(key, value)
    if isinstance(value, dict) and "tiers" in value:
        return parse_hourly_rate_card(key, value)
    if not isinstance(value, dict):
        raise _ShapeError("Configuration value must be an object.")
    return value


def _read_config_value(key: str) -> Any:
    row = RateConfig.objects.filter(config_key=key).values_list("config_value", flat=True).first()
    if row is None:
        raise ConfigurationError(
            f"Rate configuration '{key}' is missing.",
            context={"config_key": key},
        )
    return row


def load_rate_card(key: str) -> HourlyRateCard:
    value = _read_config_value(key)
    try:
        return parse_hourly_rate_card(key, value)
    except _ShapeError as exc:
        raise ConfigurationError(
            f"Rate configuration '{key}' is malformed: {exc}",
            context={"config_key": key},
        )


def load_fee_schedule() -> FeeSchedule:
    key = RateConfig.DEPOSITS_AND_FEES
    value = _read_config_value(key)
    try:
        return parse_fee_schedule(value)
    except _ShapeError as exc:
        raise ConfigurationError(
            f"Rate configuration '{key}' is malformed: {exc}",
            context={"config_key": key},
        )


def load_transfer_rates() -> TransferRates:
    key = RateConfig.TRANSFERS
    value = _read_config_value(key)
    try:
        return parse_transfer_rates(key, value)
    except _ShapeError as exc:
        raise ConfigurationError(
            f"Rate configuration '{key}' is malformed: {exc}",
            context={"config_key": key},
        )


def update_rate_config(*, key: str, value: Any, actor, reason: str) -> RateConfig:
    """Replace a configuration value and append the change to the audit log."""
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError({"change_reason": "A reason is required for rate changes."})
    validate_config_value(key, value)

    with transaction.atomic():
        try:
            config = RateConfig.objects.select_for_update().get(config_key=key)
        except RateConfig.DoesNotExist:
            raise NotFoundError(f"Rate configuration '{key}' not found.")

        old_value = config.config_value
        config.config_value = value
        config.updated_by = actor
        config.save(update_fields=["config_value", "updated_by", "updated_at"])
        RateChangeLog.objects.create(
            rate_config=config,
            config_key=key,
            old_value=old_value,
            new_value=value,
            change_reason=reason,
            changed_by=actor,
        )

    logger.info(
        "Rate configuration %s updated by %s: %s",
        key,
        getattr(actor, "email", None) or "system",
        reason,
    )
    return config
