"""Pydantic records for persisted profiles and goals."""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from .models import Goal, GoalCategory, Profile, RiskProfile


class ProfileRecord(BaseModel):
    user_id: UUID
    name: str
    monthly_income: Decimal = Field(ge=Decimal("0"))
    monthly_expenses: Decimal = Field(ge=Decimal("0"))
    risk_profile: RiskProfile
    streak_days: int = Field(ge=0)
    last_check_in: datetime
    created_at: datetime

    @classmethod
    def from_profile(cls, profile: Profile) -> "ProfileRecord":
        return cls(**asdict(profile))

    def to_profile(self) -> Profile:
        return Profile(**dict(self))


class GoalRecord(BaseModel):
    id: UUID
    user_id: UUID
    name: str
    emoji: str
    target_amount: Decimal = Field(gt=Decimal("0"))
    current_amount: Decimal = Field(ge=Decimal("0"))
    target_date: datetime
    category: GoalCategory
    daily_amount: Decimal = Field(ge=Decimal("0"))
    monthly_amount: Decimal = Field(ge=Decimal("0"))
    is_active: bool
    created_at: datetime

    @classmethod
    def from_goal(cls, goal: Goal) -> "GoalRecord":
        return cls(**asdict(goal))

    def to_goal(self) -> Goal:
        return Goal(**dict(self))
