"""Value records shared by the planning services and the storage layer."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class RiskProfile(str, Enum):
    CONSERVATIVE = "conservative"
    MODERATE = "moderate"
    AGGRESSIVE = "aggressive"


class GoalCategory(str, Enum):
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"


@dataclass(frozen=True)
class Profile:
    user_id: UUID
    name: str
    monthly_income: Decimal
    monthly_expenses: Decimal
    risk_profile: RiskProfile
    streak_days: int
    last_check_in: datetime
    created_at: datetime

    def surplus(self) -> Decimal:
        """Income minus expenses. May be negative."""
        return self.monthly_income - self.monthly_expenses

    def risk_annual_return(self) -> Decimal:
        from .services.finance_math import annual_return_for

        return annual_return_for(self.risk_profile)


@dataclass(frozen=True)
class Goal:
    id: UUID
    user_id: UUID
    name: str
    emoji: str
    target_amount: Decimal
    current_amount: Decimal
    target_date: datetime
    category: GoalCategory
    daily_amount: Decimal
    monthly_amount: Decimal
    is_active: bool
    created_at: datetime
