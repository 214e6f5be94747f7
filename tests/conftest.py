from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID, uuid4

import pytest

from goalplanner.models import Goal, Profile, RiskProfile

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class InMemoryStore:
    """Dict-backed stand-in for a PlannerStore."""

    def __init__(self) -> None:
        self.profiles: dict[UUID, Profile] = {}
        self.goals: dict[UUID, list[Goal]] = {}
        self.saved_goal_calls = 0

    async def load_profile(self, user_id: UUID) -> Profile | None:
        return self.profiles.get(user_id)

    async def save_profile(self, profile: Profile) -> None:
        self.profiles[profile.user_id] = profile

    async def load_goals(self, user_id: UUID) -> list[Goal]:
        return list(self.goals.get(user_id, []))

    async def save_goals(self, user_id: UUID, goals: Sequence[Goal]) -> None:
        self.saved_goal_calls += 1
        self.goals[user_id] = list(goals)


def make_profile(**overrides) -> Profile:
    values = {
        "user_id": uuid4(),
        "name": "Asha",
        "monthly_income": Decimal("80000"),
        "monthly_expenses": Decimal("45000"),
        "risk_profile": RiskProfile.MODERATE,
        "streak_days": 0,
        "last_check_in": NOW,
        "created_at": NOW,
    }
    values.update(overrides)
    return Profile(**values)


@pytest.fixture
def profile() -> Profile:
    return make_profile()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()
