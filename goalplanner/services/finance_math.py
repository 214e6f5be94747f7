"""Compound-growth contribution schedules, horizon math and projections.

Everything here is pure: no clock reads, no I/O, no logging.

Notes:
- money is Decimal end to end
- `daily_amount` uses a fixed 30-day month rather than calendar days. Changing
  that would shift every projected number, so it is kept on purpose.
- rounding to whole currency units happens only when a schedule is persisted
  (see `ContributionSchedule.rounded_monthly_amount`)
"""

from __future__ import annotations

import calendar
import math
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP

from ..models import GoalCategory, RiskProfile

ANNUAL_RETURNS: dict[RiskProfile, Decimal] = {
    RiskProfile.CONSERVATIVE: Decimal("0.07"),
    RiskProfile.MODERATE: Decimal("0.12"),
    RiskProfile.AGGRESSIVE: Decimal("0.15"),
}

STRATEGY_DESCRIPTIONS: dict[RiskProfile, str] = {
    RiskProfile.CONSERVATIVE: "Debt funds (60%) + FD (30%) + Liquid funds (10%)",
    RiskProfile.MODERATE: "Balanced funds (40%) + Index funds (30%) + Debt funds (30%)",
    RiskProfile.AGGRESSIVE: "Equity funds (50%) + Index funds (30%) + Balanced (20%)",
}

# Never plan to commit more than this share of the monthly surplus.
FEASIBLE_SURPLUS_RATIO = Decimal("0.8")
DAYS_PER_MONTH = 30
SHORT_HORIZON_MAX_MONTHS = 24
MEDIUM_HORIZON_MAX_MONTHS = 48

WHOLE_UNIT = Decimal("1")
ZERO = Decimal("0")

_missing_returns = set(RiskProfile) - set(ANNUAL_RETURNS)
_missing_strategies = set(RiskProfile) - set(STRATEGY_DESCRIPTIONS)
if _missing_returns or _missing_strategies:
    raise RuntimeError(
        f"Risk profiles without a return rate or strategy: {sorted(_missing_returns | _missing_strategies)}"
    )


def round_to_unit(value: Decimal) -> Decimal:
    """Round to a whole currency unit, half away from zero."""
    return value.quantize(WHOLE_UNIT, rounding=ROUND_HALF_UP)


def annual_return_for(risk_profile: RiskProfile) -> Decimal:
    try:
        return ANNUAL_RETURNS[RiskProfile(risk_profile)]
    except (KeyError, ValueError) as exc:
        raise ValueError(f"Unknown risk profile: {risk_profile!r}") from exc


def monthly_return_for(risk_profile: RiskProfile) -> Decimal:
    return annual_return_for(risk_profile) / Decimal(12)


def strategy_for(risk_profile: RiskProfile) -> str:
    return STRATEGY_DESCRIPTIONS[RiskProfile(risk_profile)]


def category_of(horizon_months: int) -> GoalCategory:
    """Bucket a horizon: <=24 short, <=48 medium, otherwise long."""
    if horizon_months <= SHORT_HORIZON_MAX_MONTHS:
        return GoalCategory.SHORT
    if horizon_months <= MEDIUM_HORIZON_MAX_MONTHS:
        return GoalCategory.MEDIUM
    return GoalCategory.LONG


@dataclass(frozen=True)
class ContributionSchedule:
    """Unrounded contribution plan for one goal."""

    monthly_amount: Decimal
    daily_amount: Decimal
    is_feasible: bool
    # None when surplus <= 0; the ratio is meaningless there.
    surplus_percentage: Decimal | None

    @property
    def rounded_monthly_amount(self) -> Decimal:
        return round_to_unit(self.monthly_amount)

    @property
    def rounded_daily_amount(self) -> Decimal:
        return round_to_unit(self.daily_amount)


def required_monthly_contribution(
    remaining: Decimal,
    horizon_months: int,
    monthly_return: Decimal,
) -> Decimal:
    """Invert the future value of an ordinary annuity for its payment.

    With no horizon left the whole remaining amount is due at once.
    """
    remaining = max(remaining, ZERO)
    if horizon_months <= 0:
        return remaining
    if monthly_return == ZERO:
        return remaining / Decimal(horizon_months)

    future_value_factor = (Decimal(1) + monthly_return) ** horizon_months
    annuity_factor = (future_value_factor - Decimal(1)) / monthly_return
    return remaining / annuity_factor


def compute_contribution_schedule(
    target_amount: Decimal,
    current_amount: Decimal,
    horizon_months: int,
    risk_profile: RiskProfile,
    surplus: Decimal,
) -> ContributionSchedule:
    """
    Required periodic contribution to close `target_amount - current_amount`.

    Creation passes `current_amount=0`; replanning passes the live balance.
    Both go through this one function.
    """
    remaining = Decimal(target_amount) - Decimal(current_amount)
    monthly_amount = required_monthly_contribution(
        remaining,
        horizon_months,
        monthly_return_for(risk_profile),
    )
    daily_amount = monthly_amount / Decimal(DAYS_PER_MONTH)

    surplus = Decimal(surplus)
    if surplus <= ZERO:
        return ContributionSchedule(
            monthly_amount=monthly_amount,
            daily_amount=daily_amount,
            is_feasible=False,
            surplus_percentage=None,
        )

    return ContributionSchedule(
        monthly_amount=monthly_amount,
        daily_amount=daily_amount,
        is_feasible=monthly_amount <= surplus * FEASIBLE_SURPLUS_RATIO,
        surplus_percentage=Decimal(100) * monthly_amount / surplus,
    )


def projection_series(
    current_amount: Decimal,
    monthly_amount: Decimal,
    months_remaining: int,
    monthly_return: Decimal,
) -> Iterator[tuple[int, Decimal]]:
    """
    Yield `(month_index, projected_value)` for months 0..months_remaining.

    Each step contributes first, then applies that month's growth.
    """
    value = Decimal(current_amount)
    growth = Decimal(1) + monthly_return
    months_remaining = max(months_remaining, 0)

    for month_index in range(months_remaining + 1):
        yield month_index, value
        value = (value + monthly_amount) * growth


def horizon_months(target_date: datetime, now: datetime) -> int:
    """Whole 30-day months until `target_date`, rounded up. <= 0 when not in the future."""
    seconds = (target_date - now).total_seconds()
    return math.ceil(seconds / timedelta(days=DAYS_PER_MONTH).total_seconds())


def days_left(target_date: datetime, now: datetime) -> int:
    return max(0, math.ceil((target_date - now).total_seconds() / timedelta(days=1).total_seconds()))


def months_left(target_date: datetime, now: datetime) -> int:
    """Month count shown on the goal view: ceil(days_left / 30), never negative."""
    return math.ceil(days_left(target_date, now) / DAYS_PER_MONTH)


def add_months(value: datetime, months: int) -> datetime:
    """Shift by calendar months, clamping the day to the target month's length."""
    absolute_index = (value.year * 12 + (value.month - 1)) + months
    year, month_zero_based = divmod(absolute_index, 12)
    month = month_zero_based + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)
