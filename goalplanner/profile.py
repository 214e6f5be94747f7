"""Profile router: quick assessment and financial updates."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_serializer

from .auth import get_current_user_id
from .dependencies import get_store, money, service_errors
from .errors import NotFoundError
from .models import Profile, RiskProfile
from .services.finance_math import annual_return_for, strategy_for
from .services.profile_service import create_profile, daily_surplus, update_profile
from .storage import PlannerStore

router = APIRouter(prefix="/profile", tags=["profile"])


class ProfileCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    monthly_income: Decimal = Field(ge=Decimal("0"), max_digits=14, decimal_places=2)
    monthly_expenses: Decimal = Field(ge=Decimal("0"), max_digits=14, decimal_places=2)
    risk_profile: RiskProfile = RiskProfile.MODERATE


class ProfileUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=120)
    monthly_income: Decimal | None = Field(default=None, ge=Decimal("0"), max_digits=14, decimal_places=2)
    monthly_expenses: Decimal | None = Field(default=None, ge=Decimal("0"), max_digits=14, decimal_places=2)
    risk_profile: RiskProfile | None = None


class ProfileResponse(BaseModel):
    user_id: UUID
    name: str
    monthly_income: Decimal
    monthly_expenses: Decimal
    risk_profile: RiskProfile
    streak_days: int
    last_check_in: datetime
    created_at: datetime
    monthly_surplus: Decimal
    daily_surplus: Decimal
    annual_return: Decimal
    strategy: str

    @field_serializer("monthly_income", "monthly_expenses", "monthly_surplus", "daily_surplus")
    def serialize_decimal(self, value: Decimal) -> str:
        return money(value)

    @field_serializer("annual_return")
    def serialize_rate(self, value: Decimal) -> str:
        return str(value)


def profile_response(profile: Profile) -> ProfileResponse:
    return ProfileResponse(
        user_id=profile.user_id,
        name=profile.name,
        monthly_income=profile.monthly_income,
        monthly_expenses=profile.monthly_expenses,
        risk_profile=profile.risk_profile,
        streak_days=profile.streak_days,
        last_check_in=profile.last_check_in,
        created_at=profile.created_at,
        monthly_surplus=profile.surplus(),
        daily_surplus=daily_surplus(profile),
        annual_return=annual_return_for(profile.risk_profile),
        strategy=strategy_for(profile.risk_profile),
    )


async def _require_profile(store: PlannerStore, user_id: UUID) -> Profile:
    profile = await store.load_profile(user_id)
    if profile is None:
        raise NotFoundError("Profile not found")
    return profile


@router.post("", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
async def create_profile_endpoint(
    payload: ProfileCreateRequest,
    user_id: UUID = Depends(get_current_user_id),
    store: PlannerStore = Depends(get_store),
) -> ProfileResponse:
    """Store the quick-assessment answers. The streak starts at zero."""
    with service_errors():
        if await store.load_profile(user_id) is not None:
            raise HTTPException(status_code=409, detail="Profile already exists")

        profile = create_profile(user_id, payload.model_dump())
        await store.save_profile(profile)
        return profile_response(profile)


@router.get("", response_model=ProfileResponse)
async def get_profile_endpoint(
    user_id: UUID = Depends(get_current_user_id),
    store: PlannerStore = Depends(get_store),
) -> ProfileResponse:
    with service_errors():
        return profile_response(await _require_profile(store, user_id))


@router.patch("", response_model=ProfileResponse)
async def update_profile_endpoint(
    payload: ProfileUpdateRequest,
    user_id: UUID = Depends(get_current_user_id),
    store: PlannerStore = Depends(get_store),
) -> ProfileResponse:
    """
    Update income, expenses, risk profile or name.

    Existing goal plans are not replanned; editing a goal replans it.
    """
    patch_data = payload.model_dump(exclude_unset=True, exclude_none=True)
    if not patch_data:
        raise HTTPException(status_code=422, detail="At least one field must be provided")

    with service_errors():
        profile = update_profile(await _require_profile(store, user_id), patch_data)
        await store.save_profile(profile)
        return profile_response(profile)
