from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ..errors import NotFoundError


@dataclass(frozen=True)
class GoalTemplate:
    key: str
    name: str
    emoji: str
    # None means the user supplies the amount.
    suggested_amount: Decimal | None
    months: int


GOAL_TEMPLATES: tuple[GoalTemplate, ...] = (
    GoalTemplate("foreign_trip", "Foreign Trip", "✈️", Decimal("500000"), 24),
    GoalTemplate("dream_home", "Dream Home", "🏠", Decimal("5000000"), 60),
    GoalTemplate("car_purchase", "Car Purchase", "🚗", Decimal("1000000"), 36),
    GoalTemplate("education", "Education", "🎓", Decimal("800000"), 48),
    GoalTemplate("wedding", "Wedding", "💍", Decimal("1500000"), 24),
    GoalTemplate("custom", "Custom Goal", "🎯", None, 12),
)

DEFAULT_EMOJI = "🎯"

_TEMPLATES_BY_KEY = {template.key: template for template in GOAL_TEMPLATES}


def get_template(key: str) -> GoalTemplate:
    try:
        return _TEMPLATES_BY_KEY[key]
    except KeyError as exc:
        raise NotFoundError(f"Unknown goal template: {key}") from exc


def apply_template(key: str, data: dict) -> dict:
    """Fill name, emoji, amount and months from a template; explicit values in `data` win."""
    template = get_template(key)
    merged = {
        "name": template.name,
        "emoji": template.emoji,
        "horizon_months": template.months,
    }
    if template.suggested_amount is not None:
        merged["target_amount"] = template.suggested_amount

    # An explicit date replaces the template's month count.
    if data.get("target_date") is not None:
        merged.pop("horizon_months")

    merged.update({field: value for field, value in data.items() if value is not None})
    return merged
