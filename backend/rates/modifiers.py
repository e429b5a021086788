from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence, Tuple

from django.utils import timezone

from core.errors import ConfigurationError
from core.money import ZERO, format_money, quantize_money, to_decimal

from .config import WEEKDAY_NAMES
from .models import PricingModifier


@dataclass(frozen=True)
class AppliedModifier:
    modifier_id: Optional[int]
    name: str
    modifier_type: str
    value_type: str
    value: Decimal
    amount: Decimal

    def as_dict(self) -> dict:
        return {
            "id": self.modifier_id,
            "name": self.name,
            "type": self.modifier_type,
            "value_type": self.value_type,
            "value": str(self.value),
            "amount": format_money(self.amount),
        }


def _ordered(modifiers: Iterable[PricingModifier]) -> List[PricingModifier]:
    return sorted(modifiers, key=lambda modifier: (-modifier.priority, modifier.id or 0))


def modifier_matches(
    modifier: PricingModifier,
    *,
    service_key: str,
    tour_date: date,
    party_size: int,
    advance_days: int,
) -> bool:
    """Return True when every trigger condition configured on ``modifier`` holds."""
    if not modifier.is_active:
        return False
    if modifier.service_keys and service_key not in modifier.service_keys:
        return False
    if modifier.start_date and tour_date < modifier.start_date:
        return False
    if modifier.end_date and tour_date > modifier.end_date:
        return False
    if modifier.min_advance_days is not None and advance_days < modifier.min_advance_days:
        return False
    if modifier.max_advance_days is not None and advance_days > modifier.max_advance_days:
        return False
    if modifier.min_party_size is not None and party_size < modifier.min_party_size:
        return False
    if modifier.max_party_size is not None and party_size > modifier.max_party_size:
        return False
    if modifier.weekdays:
        weekdays = {str(name).lower() for name in modifier.weekdays}
        unknown = weekdays - set(WEEKDAY_NAMES)
        if unknown:
            raise ConfigurationError(
                f"Pricing modifier '{modifier.name}' has unknown weekdays.",
                context={"modifier_id": modifier.id, "weekdays": sorted(unknown)},
            )
        if WEEKDAY_NAMES[tour_date.weekday()] not in weekdays:
            return False
    return True


def applicable_modifiers(
    *,
    service_key: str,
    tour_date: date,
    party_size: int,
    booked_on: Optional[date] = None,
) -> List[PricingModifier]:
    booked_on = booked_on or timezone.localdate()
    advance_days = (tour_date - booked_on).days
    candidates = PricingModifier.objects.filter(is_active=True)
    return [
        modifier
        for modifier in _ordered(candidates)
        if modifier_matches(
            modifier,
            service_key=service_key,
            tour_date=tour_date,
            party_size=party_size,
            advance_days=advance_days,
        )
    ]


def _modifier_amount(modifier: PricingModifier, base_amount: Decimal) -> Decimal:
    if modifier.value_type == PricingModifier.PERCENTAGE:
        amount = base_amount * to_decimal(modifier.value) / Decimal("100")
    elif modifier.value_type == PricingModifier.FLAT:
        amount = to_decimal(modifier.value)
    else:
        raise ConfigurationError(
            f"Pricing modifier '{modifier.name}' has an unknown value type.",
            context={"modifier_id": modifier.id, "value_type": modifier.value_type},
        )

    if modifier.modifier_type not in (PricingModifier.DISCOUNT, PricingModifier.SURCHARGE):
        raise ConfigurationError(
            f"Pricing modifier '{modifier.name}' has an unknown modifier type.",
            context={"modifier_id": modifier.id, "modifier_type": modifier.modifier_type},
        )
    amount = quantize_money(abs(amount))
    return -amount if modifier.is_discount else amount


def combine_modifiers(
    modifiers: Sequence[PricingModifier],
    base_amount: Decimal,
) -> Tuple[List[AppliedModifier], Decimal]:
    """
    Resolve the matched modifiers into concrete adjustments against ``base_amount``.

    An exclusive modifier overrides every other match; only the highest-priority
    exclusive one is used. Otherwise each modifier is computed against the same
    base and the adjustments are summed.
    """

    ordered = _ordered(modifiers)
    exclusive = [modifier for modifier in ordered if modifier.is_exclusive]
    selected = exclusive[:1] if exclusive else ordered

    applied: List[AppliedModifier] = []
    total = ZERO
    for modifier in selected:
        amount = _modifier_amount(modifier, base_amount)
        applied.append(
            AppliedModifier(
                modifier_id=modifier.id,
                name=modifier.name,
                modifier_type=modifier.modifier_type,
                value_type=modifier.value_type,
                value=to_decimal(modifier.value),
                amount=amount,
            )
        )
        total += amount
    return applied, quantize_money(total)
