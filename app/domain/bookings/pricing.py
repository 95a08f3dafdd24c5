"""Rule-based price and duration estimates for the booking form"""

import math
from typing import Iterable, Optional

from ...models import PricingRule, PricingRuleType


def _find_rule(rules: list[PricingRule], rule_type: str, service_type: str) -> Optional[PricingRule]:
    """First rule (by display order) of this type for the service or for every service"""
    for rule in rules:
        if rule.rule_type == rule_type and rule.service_type in (service_type, None):
            return rule
    return None


def _fmt(value: float) -> str:
    return f"{value:g}"


def calculate_price(
    rules: list[PricingRule],
    service_type: str,
    house_square_footage: Optional[int] = None,
    basement_square_footage: Optional[int] = None,
    number_of_bedrooms: Optional[float] = None,
    number_of_bathrooms: Optional[float] = None,
    selected_extras: Optional[Iterable[int]] = None,
) -> dict:
    """
    Price and duration for a booking.

    `rules` must be the active pricing rules ordered by display order.
    Price is rounded to cents; duration is rounded up to the next half hour
    and is None when no rule contributes time.
    """
    total_price = 0.0
    total_time = 0.0
    breakdown: list[dict] = []

    base = _find_rule(rules, PricingRuleType.BASE_PRICE, service_type)
    if base:
        price = base.price_amount or 0
        total_price += price
        breakdown.append({"description": f"Base price for {service_type}", "amount": price})
        total_time += base.time_amount or 0

    square_footage = (house_square_footage or 0) + (basement_square_footage or 0)
    if square_footage > 0:
        rule = _find_rule(rules, PricingRuleType.SQFT_RATE, service_type)
        if rule and rule.rate_per_unit:
            price = square_footage * rule.rate_per_unit
            total_price += price
            breakdown.append(
                {"description": f"{square_footage} sq ft @ ${_fmt(rule.rate_per_unit)}/sq ft", "amount": price}
            )
            total_time += square_footage * (rule.time_per_unit or 0)

    for count, rule_type, label in (
        (number_of_bedrooms, PricingRuleType.BEDROOM_RATE, "bedroom"),
        (number_of_bathrooms, PricingRuleType.BATHROOM_RATE, "bathroom"),
    ):
        if not count or count <= 0:
            continue
        rule = _find_rule(rules, rule_type, service_type)
        if rule and rule.rate_per_unit:
            price = count * rule.rate_per_unit
            total_price += price
            breakdown.append(
                {
                    "description": f"{_fmt(count)} {label}(s) @ ${_fmt(rule.rate_per_unit)}/{label}",
                    "amount": price,
                }
            )
            total_time += count * (rule.time_per_unit or 0)

    extras_by_id = {r.id: r for r in rules if r.rule_type == PricingRuleType.EXTRA_SERVICE}
    for extra_id in selected_extras or []:
        extra = extras_by_id.get(extra_id)
        if not extra:
            continue
        price = extra.price_amount or 0
        total_price += price
        breakdown.append({"description": extra.extra_name or "Extra service", "amount": price})
        total_time += extra.time_amount or 0

    if total_time == 0:
        estimate = _find_rule(rules, PricingRuleType.TIME_ESTIMATE, service_type)
        if estimate:
            total_time += estimate.time_amount or 0
            if estimate.time_per_unit and square_footage > 0:
                total_time += square_footage * estimate.time_per_unit

    final_time = math.ceil(total_time * 2) / 2
    return {
        "price": round(total_price, 2),
        "durationHours": final_time if final_time > 0 else None,
        "breakdown": breakdown,
    }
