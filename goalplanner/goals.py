"""Goals router: creation, plan view, edits, contributions and removal."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, field_serializer

from .auth import get_current_user_id
from .dependencies import get_store, money, service_errors
from .errors import NotFoundError, ValidationError
from .models import Goal, GoalCategory
from .services.finance_math import category_of, horizon_months, strategy_for
from .services.goal_templates import GOAL_TEMPLATES
from .services.goals_service import (
    GoalPlan,
    _now,
    find_goal,
    goal_plan,
    remaining_based_schedule,
    utc_datetime,
)
from .services.planner_service import (
    add_bulk_amount,
    add_goal,
    deactivate_goal,
    delete_goal,
    edit_goal,
    load_state,
    save_state,
)
from .storage import PlannerStore

GoalStatusFilter = Literal["active", "inactive", "all"]

router = APIRouter(prefix="/goals", tags=["goals"])


class GoalCreateRequest(BaseModel):
    template: str | None = None
    name: str | None = Field(default=None, min_length=1, max_length=120)
    emoji: str | None = Field(default=None, max_length=16)
    target_amount: Decimal | None = Field(default=None, gt=Decimal("0"), max_digits=14, decimal_places=2)
    horizon_months: int | None = Field(default=None, gt=0, le=600)
    target_date: datetime | None = None


class GoalUpdateRequest(BaseModel):
    target_amount: Decimal | None = Field(default=None, gt=Decimal("0"), max_digits=14, decimal_places=2)
    target_date: datetime | None = None


class PlanPreviewRequest(BaseModel):
    target_amount: Decimal = Field(gt=Decimal("0"), max_digits=14, decimal_places=2)
    current_amount: Decimal = Field(default=Decimal("0"), ge=Decimal("0"), max_digits=14, decimal_places=2)
    horizon_months: int | None = Field(default=None, gt=0, le=600)
    target_date: datetime | None = None


class ContributionRequest(BaseModel):
    amount: Decimal = Field(gt=Decimal("0"), max_digits=14, decimal_places=2)


class GoalResponse(BaseModel):
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

    @field_serializer("target_amount", "current_amount", "daily_amount", "monthly_amount")
    def serialize_decimal(self, value: Decimal) -> str:
        return money(value)


class MilestoneResponse(BaseModel):
    percentage: int
    label: str
    reward: str


class MilestoneStatusResponse(BaseModel):
    achieved: list[MilestoneResponse]
    current: Decimal
    next_milestone: MilestoneResponse | None
    amount_to_next: Decimal

    @field_serializer("current", "amount_to_next")
    def serialize_decimal(self, value: Decimal) -> str:
        return money(value)


class ProjectionPoint(BaseModel):
    month: int
    projected: Decimal
    target: Decimal

    @field_serializer("projected", "target")
    def serialize_decimal(self, value: Decimal) -> str:
        return money(value)


class GoalPlanResponse(BaseModel):
    goal: GoalResponse
    days_left: int
    months_left: int
    progress_pct: Decimal
    required_monthly_amount: Decimal
    required_daily_amount: Decimal
    is_feasible: bool
    surplus_percentage: Decimal | None
    strategy: str
    projection: list[ProjectionPoint]
    milestones: MilestoneStatusResponse

    @field_serializer("progress_pct", "required_monthly_amount", "required_daily_amount")
    def serialize_decimal(self, value: Decimal) -> str:
        return money(value)

    @field_serializer("surplus_percentage")
    def serialize_optional(self, value: Decimal | None) -> str | None:
        return None if value is None else money(value)


class PlanPreviewResponse(BaseModel):
    horizon_months: int
    category: GoalCategory
    monthly_amount: Decimal
    daily_amount: Decimal
    is_feasible: bool
    surplus_percentage: Decimal | None
    strategy: str

    @field_serializer("monthly_amount", "daily_amount")
    def serialize_decimal(self, value: Decimal) -> str:
        return money(value)

    @field_serializer("surplus_percentage")
    def serialize_optional(self, value: Decimal | None) -> str | None:
        return None if value is None else money(value)


class ContributionResponse(BaseModel):
    goal: GoalResponse
    streak_days: int
    streak_updated: bool
    weekly_streak: bool


class TemplateResponse(BaseModel):
    key: str
    name: str
    emoji: str
    suggested_amount: Decimal | None
    months: int

    @field_serializer("suggested_amount")
    def serialize_optional(self, value: Decimal | None) -> str | None:
        return None if value is None else money(value)


def goal_response(goal: Goal) -> GoalResponse:
    return GoalResponse.model_validate(goal, from_attributes=True)


def goal_plan_response(plan: GoalPlan) -> GoalPlanResponse:
    milestones = plan.milestones
    return GoalPlanResponse(
        goal=goal_response(plan.goal),
        days_left=plan.days_left,
        months_left=plan.months_left,
        progress_pct=plan.progress_pct,
        required_monthly_amount=plan.required_monthly_amount,
        required_daily_amount=plan.required_daily_amount,
        is_feasible=plan.is_feasible,
        surplus_percentage=plan.surplus_percentage,
        strategy=plan.strategy,
        projection=[
            ProjectionPoint(month=month, projected=value, target=plan.goal.target_amount)
            for month, value in plan.projection
        ],
        milestones=MilestoneStatusResponse(
            achieved=[MilestoneResponse.model_validate(m, from_attributes=True) for m in milestones.achieved],
            current=milestones.current,
            next_milestone=(
                MilestoneResponse.model_validate(milestones.next_milestone, from_attributes=True)
                if milestones.next_milestone is not None
                else None
            ),
            amount_to_next=milestones.amount_to_next,
        ),
    )


@router.get("/templates", response_model=list[TemplateResponse])
async def list_templates_endpoint() -> list[TemplateResponse]:
    return [TemplateResponse.model_validate(t, from_attributes=True) for t in GOAL_TEMPLATES]


@router.post("/plan", response_model=PlanPreviewResponse)
async def preview_plan_endpoint(
    payload: PlanPreviewRequest,
    user_id: UUID = Depends(get_current_user_id),
    store: PlannerStore = Depends(get_store),
) -> PlanPreviewResponse:
    """Compute a contribution schedule for a candidate goal without saving anything."""
    with service_errors():
        profile = await store.load_profile(user_id)
        if profile is None:
            raise NotFoundError("Profile not found")

        if payload.horizon_months is not None:
            horizon = payload.horizon_months
        elif payload.target_date is not None:
            horizon = horizon_months(utc_datetime(payload.target_date), _now())
        else:
            raise ValidationError("Provide horizon_months or target_date")

        schedule = remaining_based_schedule(payload.target_amount, payload.current_amount, horizon, profile)
        return PlanPreviewResponse(
            horizon_months=horizon,
            category=category_of(horizon),
            monthly_amount=schedule.rounded_monthly_amount,
            daily_amount=schedule.rounded_daily_amount,
            is_feasible=schedule.is_feasible,
            surplus_percentage=schedule.surplus_percentage,
            strategy=strategy_for(profile.risk_profile),
        )


@router.post("", response_model=GoalResponse, status_code=status.HTTP_201_CREATED)
async def create_goal_endpoint(
    payload: GoalCreateRequest,
    user_id: UUID = Depends(get_current_user_id),
    store: PlannerStore = Depends(get_store),
) -> GoalResponse:
    """Create a goal from a template or custom values, planned from zero progress."""
    with service_errors():
        state = await load_state(store, user_id)
        state, goal = add_goal(state, payload.model_dump(exclude_none=True))
        await store.save_goals(user_id, state.goals)
        return goal_response(goal)


@router.get("", response_model=list[GoalResponse])
async def list_goals_endpoint(
    status: GoalStatusFilter = Query(default="all"),
    user_id: UUID = Depends(get_current_user_id),
    store: PlannerStore = Depends(get_store),
) -> list[GoalResponse]:
    with service_errors():
        goals = await store.load_goals(user_id)

    if status == "active":
        goals = [goal for goal in goals if goal.is_active]
    elif status == "inactive":
        goals = [goal for goal in goals if not goal.is_active]
    return [goal_response(goal) for goal in goals]


@router.get("/{goal_id}", response_model=GoalPlanResponse)
async def get_goal_endpoint(
    goal_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    store: PlannerStore = Depends(get_store),
) -> GoalPlanResponse:
    """Goal detail: live required contribution, projection and milestones."""
    with service_errors():
        state = await load_state(store, user_id)
        goal = find_goal(state.goals, goal_id)
        return goal_plan_response(goal_plan(goal, state.profile))


@router.patch("/{goal_id}", response_model=GoalResponse)
async def update_goal_endpoint(
    goal_id: UUID,
    payload: GoalUpdateRequest,
    user_id: UUID = Depends(get_current_user_id),
    store: PlannerStore = Depends(get_store),
) -> GoalResponse:
    """Change target amount and/or date; the plan is recomputed from current progress."""
    patch_data = payload.model_dump(exclude_unset=True, exclude_none=True)
    if not patch_data:
        raise HTTPException(status_code=422, detail="At least one field must be provided")

    with service_errors():
        state = await load_state(store, user_id)
        state, goal = edit_goal(state, goal_id, patch_data)
        await store.save_goals(user_id, state.goals)
        return goal_response(goal)


@router.post("/{goal_id}/contributions", response_model=ContributionResponse)
async def add_contribution_endpoint(
    goal_id: UUID,
    payload: ContributionRequest,
    user_id: UUID = Depends(get_current_user_id),
    store: PlannerStore = Depends(get_store),
) -> ContributionResponse:
    """Add money to a goal (clamped at target). Counts toward the streak once per day."""
    with service_errors():
        state = await load_state(store, user_id)
        result = add_bulk_amount(state, goal_id, payload.amount)
        await save_state(store, result.state)
        return ContributionResponse(
            goal=goal_response(result.goal),
            streak_days=result.state.profile.streak_days,
            streak_updated=result.streak.applied,
            weekly_streak=result.streak.weekly_streak,
        )


@router.post("/{goal_id}/deactivate", response_model=GoalResponse)
async def deactivate_goal_endpoint(
    goal_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    store: PlannerStore = Depends(get_store),
) -> GoalResponse:
    with service_errors():
        state = await load_state(store, user_id)
        state, goal = deactivate_goal(state, goal_id)
        await store.save_goals(user_id, state.goals)
        return goal_response(goal)


@router.delete("/{goal_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_goal_endpoint(
    goal_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    store: PlannerStore = Depends(get_store),
):
    """Remove one goal from the user's collection."""
    with service_errors():
        state = await load_state(store, user_id)
        state = delete_goal(state, goal_id)
        await store.save_goals(user_id, state.goals)
