from __future__ import annotations

import asyncio
from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from goalplanner.errors import NotFoundError, PersistenceError, ValidationError
from goalplanner.services import planner_service
from goalplanner.services.daily_habits import Reflection
from goalplanner.services.planner_service import CheckInEvent, PlannerState
from goalplanner.services.streak_service import StreakTier

from .conftest import NOW, InMemoryStore, make_profile


def _run(coro):
    return asyncio.run(coro)


def _state_with_goal(**profile_overrides):
    state = PlannerState(profile=make_profile(**profile_overrides), goals=[])
    state, goal = planner_service.add_goal(
        state,
        {"name": "Foreign Trip", "target_amount": Decimal("500000"), "horizon_months": 24},
        NOW,
    )
    return state, goal


def test_add_goal_appends_in_insertion_order() -> None:
    state, first = _state_with_goal()
    state, second = planner_service.add_goal(state, {"template": "wedding"}, NOW)

    assert [g.id for g in state.goals] == [first.id, second.id]


def test_bulk_amount_clamps_and_counts_toward_streak() -> None:
    state, goal = _state_with_goal(streak_days=3, last_check_in=NOW - timedelta(days=1))

    result = planner_service.add_bulk_amount(state, goal.id, Decimal("600000"), NOW)

    assert result.goal.current_amount == Decimal("500000")
    assert result.goal.monthly_amount == goal.monthly_amount
    assert result.state.goals == [result.goal]
    assert result.streak.applied is True
    assert result.state.profile.streak_days == 4
    assert result.state.profile.last_check_in == NOW


def test_bulk_amount_same_day_leaves_profile_untouched() -> None:
    state, goal = _state_with_goal(streak_days=3, last_check_in=NOW - timedelta(hours=1))

    result = planner_service.add_bulk_amount(state, goal.id, Decimal("1000"), NOW)

    assert result.streak.applied is False
    assert result.state.profile == state.profile
    assert result.goal.current_amount == Decimal("1000")


def test_bulk_amount_rejected_without_any_mutation() -> None:
    state, goal = _state_with_goal(last_check_in=NOW - timedelta(days=2))

    with pytest.raises(ValidationError):
        planner_service.add_bulk_amount(state, goal.id, Decimal("0"), NOW)
    with pytest.raises(NotFoundError):
        planner_service.add_bulk_amount(state, uuid4(), Decimal("10"), NOW)

    assert state.goals == [goal]
    assert state.profile.streak_days == 0


def test_check_in_reports_progress_against_daily_target() -> None:
    state, goal = _state_with_goal(streak_days=6, last_check_in=NOW - timedelta(days=1))

    result = planner_service.check_in(state, CheckInEvent(amount=Decimal("309")), NOW)

    assert result.daily_target == goal.daily_amount == Decimal("618")
    assert result.target_progress_pct == Decimal("50.00")
    assert result.state.profile.streak_days == 7
    assert result.streak.weekly_streak is True
    assert result.state.goals == state.goals


def test_check_in_progress_is_capped_and_optional() -> None:
    state, _ = _state_with_goal()
    over = planner_service.check_in(state, CheckInEvent(amount=Decimal("5000")), NOW)
    assert over.target_progress_pct == Decimal("100.00")

    empty = PlannerState(profile=make_profile(), goals=[])
    result = planner_service.check_in(empty, CheckInEvent(amount=Decimal("50")), NOW)
    assert result.target_progress_pct is None


def test_check_in_rejects_negative_amount() -> None:
    state, _ = _state_with_goal()
    with pytest.raises(ValidationError):
        planner_service.check_in(state, CheckInEvent(amount=Decimal("-1")), NOW)


def test_check_in_sums_ticked_habits() -> None:
    state, _ = _state_with_goal(streak_days=2, last_check_in=NOW - timedelta(days=1))
    event = CheckInEvent(
        habits=("packed_lunch", "skipped_coffee", "skipped_impulse_buy", "packed_lunch"),
        reflection=Reflection.GOOD,
    )

    result = planner_service.check_in(state, event, NOW)

    assert result.amount_saved == Decimal("500")
    assert [h.key for h in result.habits] == ["skipped_coffee", "packed_lunch", "skipped_impulse_buy"]
    assert result.reflection == Reflection.GOOD
    assert result.target_progress_pct == Decimal("80.91")
    assert result.state.profile.streak_days == 3


def test_check_in_rejects_unknown_habit_and_mixed_input() -> None:
    state, _ = _state_with_goal()

    with pytest.raises(NotFoundError):
        planner_service.check_in(state, CheckInEvent(habits=("gym_membership",)), NOW)
    with pytest.raises(ValidationError):
        planner_service.check_in(state, CheckInEvent(amount=Decimal("10"), habits=("packed_lunch",)), NOW)


def test_edit_deactivate_and_delete() -> None:
    state, goal = _state_with_goal()

    state, edited = planner_service.edit_goal(state, goal.id, {"target_amount": Decimal("400000")}, NOW)
    assert state.goals == [edited]
    assert edited.monthly_amount < goal.monthly_amount

    state, inactive = planner_service.deactivate_goal(state, goal.id)
    assert inactive.is_active is False
    assert planner_service.dashboard(state, NOW).summary.daily_target == Decimal("0")

    profile_before = state.profile
    state = planner_service.delete_goal(state, goal.id)
    assert state.goals == []
    assert state.profile == profile_before


def test_dashboard_view() -> None:
    state, goal = _state_with_goal(streak_days=12, last_check_in=NOW - timedelta(hours=3))

    view = planner_service.dashboard(state, NOW)

    assert view.summary.daily_target == goal.daily_amount
    assert view.streak_tier == StreakTier.HABIT
    assert view.consistency_pct == Decimal("40.00")
    assert view.checked_in_today is True
    assert view.monthly_surplus == Decimal("35000")


def test_load_state_requires_profile(store) -> None:
    with pytest.raises(NotFoundError):
        _run(planner_service.load_state(store, uuid4()))


def test_save_and_load_state(store) -> None:
    state, goal = _state_with_goal()

    _run(planner_service.save_state(store, state))
    loaded = _run(planner_service.load_state(store, state.profile.user_id))

    assert loaded == state


def test_save_state_writes_goals_before_profile() -> None:
    class ProfileWriteFails(InMemoryStore):
        async def save_profile(self, profile):
            raise PersistenceError("Could not write profile.json")

    failing = ProfileWriteFails()
    state, goal = _state_with_goal(streak_days=3, last_check_in=NOW - timedelta(days=1))
    result = planner_service.add_bulk_amount(state, goal.id, Decimal("1000"), NOW)

    with pytest.raises(PersistenceError):
        _run(planner_service.save_state(failing, result.state))

    assert failing.goals[state.profile.user_id] == [result.goal]
    assert state.profile.user_id not in failing.profiles
