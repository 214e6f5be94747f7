"""
Explicit Profile + Goals aggregate and the composed user actions.

Every action takes the current `PlannerState` and returns a new one; nothing
here reads ambient state. Loading and saving go through a `PlannerStore`.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import TYPE_CHECKING, Any
from uuid import UUID

from ..errors import NotFoundError, ValidationError
from ..models import Goal, Profile
from . import goals_service, streak_service
from .daily_habits import Reflection, SavingHabit, habit_savings, resolve_habits
from .goals_service import PortfolioSummary
from .streak_service import StreakTier, StreakTransition

if TYPE_CHECKING:
    from ..storage.base import PlannerStore


@dataclass(frozen=True)
class PlannerState:
    profile: Profile
    goals: list[Goal]


@dataclass(frozen=True)
class CheckInEvent:
    """A day's check-in: either ticked habit keys or a raw amount saved."""

    amount: Decimal = Decimal("0")
    habits: tuple[str, ...] = ()
    reflection: Reflection | None = None


@dataclass(frozen=True)
class CheckInResult:
    state: PlannerState
    amount_saved: Decimal
    habits: tuple[SavingHabit, ...]
    reflection: Reflection | None
    daily_target: Decimal
    # None when there is no active daily target to measure against.
    target_progress_pct: Decimal | None
    streak: StreakTransition


@dataclass(frozen=True)
class ContributionResult:
    state: PlannerState
    goal: Goal
    streak: StreakTransition


@dataclass(frozen=True)
class Dashboard:
    summary: PortfolioSummary
    streak_days: int
    streak_tier: StreakTier
    consistency_pct: Decimal
    checked_in_today: bool
    monthly_surplus: Decimal


def add_goal(state: PlannerState, data: dict[str, Any], now: datetime | None = None) -> tuple[PlannerState, Goal]:
    goal = goals_service.create_goal(state.profile, data, now)
    return replace(state, goals=[*state.goals, goal]), goal


def edit_goal(
    state: PlannerState,
    goal_id: UUID,
    patch: dict[str, Any],
    now: datetime | None = None,
) -> tuple[PlannerState, Goal]:
    goal = goals_service.find_goal(state.goals, goal_id)
    updated = goals_service.edit_goal(goal, state.profile, patch, now)
    return replace(state, goals=goals_service.replace_goal(state.goals, updated)), updated


def add_bulk_amount(
    state: PlannerState,
    goal_id: UUID,
    amount: Any,
    now: datetime | None = None,
) -> ContributionResult:
    """Contribute to one goal and count it toward the streak (at most once a day)."""
    now = now or goals_service._now()
    goal = goals_service.find_goal(state.goals, goal_id)
    updated = goals_service.add_contribution(goal, amount)
    transition = streak_service.contribution_check_in(state.profile, now)

    new_state = PlannerState(
        profile=transition.profile,
        goals=goals_service.replace_goal(state.goals, updated),
    )
    return ContributionResult(state=new_state, goal=updated, streak=transition)


def check_in(
    state: PlannerState,
    event: CheckInEvent,
    now: datetime | None = None,
) -> CheckInResult:
    """
    Record the daily check-in and report the day's savings against the daily target.

    With ticked habits the amount saved is the sum of their catalog savings;
    a raw amount is only accepted when no habits are given.
    """
    now = now or goals_service._now()
    try:
        amount = Decimal(str(event.amount))
    except ArithmeticError as exc:
        raise ValidationError("amount must be a number") from exc
    if not amount.is_finite() or amount < Decimal("0"):
        raise ValidationError("amount must be >= 0")

    habits = resolve_habits(event.habits)
    if habits:
        if amount > Decimal("0"):
            raise ValidationError("Provide either habits or amount, not both")
        amount = habit_savings(habits)

    transition = streak_service.explicit_check_in(state.profile, now)
    target = goals_service.daily_target(state.goals)

    target_progress: Decimal | None = None
    if target > Decimal("0"):
        target_progress = min(amount * Decimal(100) / target, Decimal(100)).quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP
        )

    return CheckInResult(
        state=replace(state, profile=transition.profile),
        amount_saved=amount,
        habits=habits,
        reflection=event.reflection,
        daily_target=target,
        target_progress_pct=target_progress,
        streak=transition,
    )


def deactivate_goal(state: PlannerState, goal_id: UUID) -> tuple[PlannerState, Goal]:
    goal = goals_service.deactivate_goal(goals_service.find_goal(state.goals, goal_id))
    return replace(state, goals=goals_service.replace_goal(state.goals, goal)), goal


def delete_goal(state: PlannerState, goal_id: UUID) -> PlannerState:
    return replace(state, goals=goals_service.remove_goal(state.goals, goal_id))


def dashboard(state: PlannerState, now: datetime | None = None) -> Dashboard:
    now = now or goals_service._now()
    streak_days = state.profile.streak_days
    return Dashboard(
        summary=goals_service.portfolio_summary(state.goals),
        streak_days=streak_days,
        streak_tier=streak_service.streak_tier(streak_days),
        consistency_pct=streak_service.consistency_pct(streak_days),
        checked_in_today=streak_service.is_checked_in_today(state.profile, now),
        monthly_surplus=state.profile.surplus(),
    )


async def load_state(store: PlannerStore, user_id: UUID) -> PlannerState:
    profile = await store.load_profile(user_id)
    if profile is None:
        raise NotFoundError("Profile not found")
    goals = await store.load_goals(user_id)
    return PlannerState(profile=profile, goals=list(goals))


async def save_state(store: PlannerStore, state: PlannerState) -> None:
    # Goals first: if the profile write fails, only the streak credit is lost.
    await store.save_goals(state.profile.user_id, state.goals)
    await store.save_profile(state.profile)
