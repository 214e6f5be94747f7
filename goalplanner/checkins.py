"""Daily check-in router."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, field_serializer

from .auth import get_current_user_id
from .dependencies import get_store, money, service_errors
from .services.daily_habits import SAVING_HABITS, Reflection
from .services.planner_service import CheckInEvent, check_in, load_state
from .services.streak_service import StreakTier, streak_tier
from .storage import PlannerStore

router = APIRouter(prefix="/check-ins", tags=["check-ins"])


class CheckInRequest(BaseModel):
    habits: list[str] = Field(default_factory=list, max_length=20)
    amount: Decimal = Field(default=Decimal("0"), ge=Decimal("0"), max_digits=14, decimal_places=2)
    reflection: Reflection | None = None


class HabitResponse(BaseModel):
    key: str
    text: str
    savings: Decimal

    @field_serializer("savings")
    def serialize_decimal(self, value: Decimal) -> str:
        return money(value)


class CheckInResponse(BaseModel):
    amount_saved: Decimal
    habits: list[HabitResponse]
    reflection: Reflection | None
    daily_target: Decimal
    target_progress_pct: Decimal | None
    streak_days: int
    streak_tier: StreakTier
    weekly_streak: bool
    last_check_in: datetime

    @field_serializer("amount_saved", "daily_target")
    def serialize_decimal(self, value: Decimal) -> str:
        return money(value)

    @field_serializer("target_progress_pct")
    def serialize_optional(self, value: Decimal | None) -> str | None:
        return None if value is None else money(value)


@router.get("/habits", response_model=list[HabitResponse])
async def list_habits_endpoint() -> list[HabitResponse]:
    return [HabitResponse.model_validate(habit, from_attributes=True) for habit in SAVING_HABITS]


@router.post("", response_model=CheckInResponse)
async def check_in_endpoint(
    payload: CheckInRequest,
    user_id: UUID = Depends(get_current_user_id),
    store: PlannerStore = Depends(get_store),
) -> CheckInResponse:
    """Record today's check-in from ticked habits or an amount. Repeating it the same day keeps the streak."""
    event = CheckInEvent(amount=payload.amount, habits=tuple(payload.habits), reflection=payload.reflection)
    with service_errors():
        state = await load_state(store, user_id)
        result = check_in(state, event)
        await store.save_profile(result.state.profile)

    profile = result.state.profile
    return CheckInResponse(
        amount_saved=result.amount_saved,
        habits=[HabitResponse.model_validate(habit, from_attributes=True) for habit in result.habits],
        reflection=result.reflection,
        daily_target=result.daily_target,
        target_progress_pct=result.target_progress_pct,
        streak_days=profile.streak_days,
        streak_tier=streak_tier(profile.streak_days),
        weekly_streak=result.streak.weekly_streak,
        last_check_in=profile.last_check_in,
    )
