from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_serializer

from .auth import get_current_user_id
from .dependencies import get_store, money, service_errors
from .services.planner_service import dashboard, load_state
from .services.streak_service import StreakTier
from .storage import PlannerStore

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


class DashboardResponse(BaseModel):
    total_saved: Decimal
    total_target: Decimal
    overall_progress_pct: Decimal
    daily_target: Decimal
    active_goal_count: int
    monthly_surplus: Decimal
    streak_days: int
    streak_tier: StreakTier
    consistency_pct: Decimal
    checked_in_today: bool

    @field_serializer(
        "total_saved",
        "total_target",
        "overall_progress_pct",
        "daily_target",
        "monthly_surplus",
        "consistency_pct",
    )
    def serialize_decimal(self, value: Decimal) -> str:
        return money(value)


@router.get("", response_model=DashboardResponse)
async def get_dashboard_endpoint(
    user_id: UUID = Depends(get_current_user_id),
    store: PlannerStore = Depends(get_store),
) -> DashboardResponse:
    with service_errors():
        view = dashboard(await load_state(store, user_id))

    summary = view.summary
    return DashboardResponse(
        total_saved=summary.total_saved,
        total_target=summary.total_target,
        overall_progress_pct=summary.overall_progress_pct,
        daily_target=summary.daily_target,
        active_goal_count=summary.active_goal_count,
        monthly_surplus=view.monthly_surplus,
        streak_days=view.streak_days,
        streak_tier=view.streak_tier,
        consistency_pct=view.consistency_pct,
        checked_in_today=view.checked_in_today,
    )
