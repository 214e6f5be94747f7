"""Service layer for goal lifecycle, derived plan fields and progress queries."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from decimal import Decimal, ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP
from typing import Any
from uuid import UUID, uuid4

from ..errors import NotFoundError, ValidationError
from ..models import Goal, Profile
from .finance_math import (
    ContributionSchedule,
    add_months,
    category_of,
    compute_contribution_schedule,
    days_left,
    horizon_months,
    monthly_return_for,
    months_left,
    projection_series,
    round_to_unit,
    strategy_for,
)
from .goal_templates import DEFAULT_EMOJI, apply_template

logger = logging.getLogger(__name__)

PCT_QUANT = Decimal("0.01")
ZERO = Decimal("0")


@dataclass(frozen=True)
class Milestone:
    percentage: int
    label: str
    reward: str


MILESTONES: tuple[Milestone, ...] = (
    Milestone(25, "25% Milestone", "🌟 First Quarter!"),
    Milestone(50, "50% Milestone", "🎯 Halfway There!"),
    Milestone(75, "75% Milestone", "💪 Almost Done!"),
    Milestone(100, "100% Complete", "🏆 Goal Achieved!"),
)


@dataclass(frozen=True)
class MilestoneStatus:
    achieved: list[Milestone]
    current: Decimal
    next_milestone: Milestone | None
    amount_to_next: Decimal


@dataclass(frozen=True)
class GoalPlan:
    goal: Goal
    days_left: int
    months_left: int
    progress_pct: Decimal
    required_monthly_amount: Decimal
    required_daily_amount: Decimal
    is_feasible: bool
    surplus_percentage: Decimal | None
    strategy: str
    projection: list[tuple[int, Decimal]]
    milestones: MilestoneStatus


@dataclass(frozen=True)
class PortfolioSummary:
    total_saved: Decimal
    total_target: Decimal
    overall_progress_pct: Decimal
    daily_target: Decimal
    active_goal_count: int


def _now() -> datetime:
    """Wrapper for deterministic tests."""
    return datetime.now(timezone.utc)


def utc_datetime(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so they compare with the clock."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_decimal(value: Any, field: str) -> Decimal:
    try:
        amount = Decimal(str(value))
    except ArithmeticError as exc:
        raise ValidationError(f"{field} must be a number") from exc
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a number")
    return amount


def _validate_target_amount(value: Any) -> Decimal:
    if value is None:
        raise ValidationError("target_amount is required")
    target_amount = _to_decimal(value, "target_amount")
    if target_amount <= ZERO:
        raise ValidationError("target_amount must be greater than 0")
    return target_amount


def _resolve_horizon(data: dict[str, Any], now: datetime) -> tuple[int, datetime]:
    """
    Resolve `(horizon_months, target_date)` for a new goal.

    A month count wins over a date: the target date is then that many calendar
    months from now and the count itself is the planning horizon.
    """
    months = data.get("horizon_months")
    if months is not None:
        try:
            months = int(months)
        except (TypeError, ValueError) as exc:
            raise ValidationError("horizon_months must be an integer") from exc
        if months <= 0:
            raise ValidationError("horizon_months must be greater than 0")
        return months, add_months(now, months)

    target_date = data.get("target_date")
    if target_date is None:
        raise ValidationError("Provide horizon_months or target_date")

    target_date = utc_datetime(target_date)
    horizon = horizon_months(target_date, now)
    if horizon <= 0:
        raise ValidationError("target_date must be in the future")
    return horizon, target_date


def remaining_based_schedule(
    target_amount: Decimal,
    current_amount: Decimal,
    horizon: int,
    profile: Profile,
) -> ContributionSchedule:
    """The one schedule path shared by creation (balance 0) and edits (live balance)."""
    return compute_contribution_schedule(
        target_amount,
        current_amount,
        horizon,
        profile.risk_profile,
        profile.surplus(),
    )


def create_goal(
    profile: Profile,
    data: dict[str, Any],
    now: datetime | None = None,
) -> Goal:
    """Create an active goal with its initial plan computed from zero progress."""
    now = now or _now()

    template_key = data.get("template")
    if template_key:
        data = apply_template(template_key, {k: v for k, v in data.items() if k != "template"})

    name = str(data.get("name") or "").strip()
    if not name:
        raise ValidationError("name is required")

    target_amount = _validate_target_amount(data.get("target_amount"))
    horizon, target_date = _resolve_horizon(data, now)
    schedule = remaining_based_schedule(target_amount, ZERO, horizon, profile)

    goal = Goal(
        id=uuid4(),
        user_id=profile.user_id,
        name=name,
        emoji=str(data.get("emoji") or DEFAULT_EMOJI),
        target_amount=target_amount,
        current_amount=ZERO,
        target_date=target_date,
        category=category_of(horizon),
        daily_amount=schedule.rounded_daily_amount,
        monthly_amount=schedule.rounded_monthly_amount,
        is_active=True,
        created_at=now,
    )
    logger.info(
        "Created goal %s for user %s: target=%s horizon=%s monthly=%s",
        goal.id,
        profile.user_id,
        target_amount,
        horizon,
        goal.monthly_amount,
    )
    return goal


def edit_goal(
    goal: Goal,
    profile: Profile,
    patch: dict[str, Any],
    now: datetime | None = None,
) -> Goal:
    """
    Change target amount and/or date, then replan from the live balance.

    Rules:
    - target_amount > 0
    - a new target_date must be in the future; an unchanged past date plans
      the whole remaining amount as due now
    - current_amount is clamped to the (possibly lower) target
    - category, monthly_amount and daily_amount are always recomputed
    """
    now = now or _now()

    unknown = set(patch) - {"target_amount", "target_date"}
    if unknown:
        raise ValidationError(f"Cannot edit fields: {', '.join(sorted(unknown))}")

    target_amount = goal.target_amount
    if patch.get("target_amount") is not None:
        target_amount = _validate_target_amount(patch["target_amount"])

    target_date = goal.target_date
    if patch.get("target_date") is not None and utc_datetime(patch["target_date"]) != goal.target_date:
        target_date = utc_datetime(patch["target_date"])
        if horizon_months(target_date, now) <= 0:
            raise ValidationError("target_date must be in the future")

    horizon = horizon_months(target_date, now)
    current_amount = min(goal.current_amount, target_amount)
    schedule = remaining_based_schedule(target_amount, current_amount, horizon, profile)

    updated = replace(
        goal,
        target_amount=target_amount,
        target_date=target_date,
        current_amount=current_amount,
        category=category_of(horizon),
        monthly_amount=schedule.rounded_monthly_amount,
        daily_amount=schedule.rounded_daily_amount,
    )
    if updated != goal:
        logger.info(
            "Replanned goal %s: target=%s horizon=%s monthly=%s",
            goal.id,
            target_amount,
            horizon,
            updated.monthly_amount,
        )
    return updated


def add_contribution(goal: Goal, amount: Any) -> Goal:
    """
    Add money to a goal, clamped at its target.

    Any excess over the target is discarded. The planned monthly/daily
    amounts are left as they were; only `edit_goal` replans.
    """
    amount = _to_decimal(amount, "amount")
    if amount <= ZERO:
        raise ValidationError("amount must be greater than 0")

    new_amount = goal.current_amount + amount
    if new_amount > goal.target_amount:
        logger.info(
            "Contribution to goal %s clamped: %s exceeds target by %s",
            goal.id,
            amount,
            new_amount - goal.target_amount,
        )
        new_amount = goal.target_amount

    return replace(goal, current_amount=new_amount)


def deactivate_goal(goal: Goal) -> Goal:
    return replace(goal, is_active=False)


def find_goal(goals: list[Goal], goal_id: UUID) -> Goal:
    for goal in goals:
        if goal.id == goal_id:
            return goal
    raise NotFoundError("Goal not found")


def replace_goal(goals: list[Goal], updated: Goal) -> list[Goal]:
    """Swap in `updated`, keeping collection order."""
    find_goal(goals, updated.id)
    return [updated if goal.id == updated.id else goal for goal in goals]


def remove_goal(goals: list[Goal], goal_id: UUID) -> list[Goal]:
    """Drop one goal from the collection. The profile is untouched."""
    find_goal(goals, goal_id)
    logger.info("Removed goal %s", goal_id)
    return [goal for goal in goals if goal.id != goal_id]


def progress_pct(goal: Goal) -> Decimal:
    if goal.target_amount <= ZERO:
        return ZERO
    ratio = goal.current_amount * Decimal(100) / goal.target_amount
    return ratio.quantize(PCT_QUANT, rounding=ROUND_HALF_UP)


def milestone_status(goal: Goal) -> MilestoneStatus:
    """
    Which of the 25/50/75/100% milestones are reached. Recomputed on demand.

    Thresholds are checked against the exact ratio; `current` is the rounded
    figure for display only.
    """
    def reached(milestone: Milestone) -> bool:
        return goal.current_amount * Decimal(100) >= goal.target_amount * Decimal(milestone.percentage)

    current = progress_pct(goal)
    achieved = [m for m in MILESTONES if reached(m)]
    pending = [m for m in MILESTONES if not reached(m)]
    next_milestone = pending[0] if pending else None

    amount_to_next = ZERO
    if next_milestone is not None:
        threshold = goal.target_amount * Decimal(next_milestone.percentage) / Decimal(100)
        amount_to_next = max(threshold - goal.current_amount, ZERO).quantize(
            Decimal("1"), rounding=ROUND_CEILING
        )

    return MilestoneStatus(
        achieved=achieved,
        current=current,
        next_milestone=next_milestone,
        amount_to_next=amount_to_next,
    )


def goal_plan(goal: Goal, profile: Profile, now: datetime | None = None) -> GoalPlan:
    """Live view of one goal: required contribution given progress so far, plus projection."""
    now = now or _now()
    remaining_months = months_left(goal.target_date, now)
    schedule = remaining_based_schedule(
        goal.target_amount,
        goal.current_amount,
        remaining_months,
        profile,
    )
    projection = [
        (month_index, round_to_unit(value))
        for month_index, value in projection_series(
            goal.current_amount,
            schedule.monthly_amount,
            remaining_months,
            monthly_return_for(profile.risk_profile),
        )
    ]
    return GoalPlan(
        goal=goal,
        days_left=days_left(goal.target_date, now),
        months_left=remaining_months,
        progress_pct=progress_pct(goal),
        required_monthly_amount=schedule.rounded_monthly_amount,
        required_daily_amount=schedule.rounded_daily_amount,
        is_feasible=schedule.is_feasible,
        surplus_percentage=schedule.surplus_percentage,
        strategy=strategy_for(profile.risk_profile),
        projection=projection,
        milestones=milestone_status(goal),
    )


def daily_target(goals: list[Goal]) -> Decimal:
    """Sum of planned daily amounts over active goals."""
    return sum((goal.daily_amount for goal in goals if goal.is_active), ZERO)


def portfolio_summary(goals: list[Goal]) -> PortfolioSummary:
    total_saved = sum((goal.current_amount for goal in goals), ZERO)
    total_target = sum((goal.target_amount for goal in goals), ZERO)

    overall = ZERO
    if total_target > ZERO:
        overall = (total_saved * Decimal(100) / total_target).quantize(PCT_QUANT, rounding=ROUND_FLOOR)

    return PortfolioSummary(
        total_saved=total_saved,
        total_target=total_target,
        overall_progress_pct=overall,
        daily_target=daily_target(goals),
        active_goal_count=sum(1 for goal in goals if goal.is_active),
    )
