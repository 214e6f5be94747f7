"""Profile aggregate: assessment, financial updates and derived inputs."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any
from uuid import UUID

from ..errors import ValidationError
from ..models import Profile, RiskProfile
from .finance_math import DAYS_PER_MONTH, round_to_unit

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = {"name", "monthly_income", "monthly_expenses", "risk_profile"}


def _now() -> datetime:
    """Wrapper for deterministic tests."""
    return datetime.now(timezone.utc)


def _amount(value: Any, field: str) -> Decimal:
    try:
        amount = Decimal(str(value))
    except ArithmeticError as exc:
        raise ValidationError(f"{field} must be a number") from exc
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a number")
    if amount < Decimal("0"):
        raise ValidationError(f"{field} must be >= 0")
    return amount


def _risk(value: Any) -> RiskProfile:
    try:
        return RiskProfile(value)
    except ValueError as exc:
        raise ValidationError("risk_profile must be one of: conservative, moderate, aggressive") from exc


def _name(value: Any) -> str:
    name = str(value or "").strip()
    if not name:
        raise ValidationError("name is required")
    return name


def create_profile(
    user_id: UUID,
    data: dict[str, Any],
    now: datetime | None = None,
) -> Profile:
    """Build a profile from the quick assessment. The streak starts at zero."""
    now = now or _now()
    profile = Profile(
        user_id=user_id,
        name=_name(data.get("name")),
        monthly_income=_amount(data.get("monthly_income"), "monthly_income"),
        monthly_expenses=_amount(data.get("monthly_expenses"), "monthly_expenses"),
        risk_profile=_risk(data.get("risk_profile", RiskProfile.MODERATE)),
        streak_days=0,
        last_check_in=now,
        created_at=now,
    )
    logger.info("Created profile for user %s (risk=%s)", user_id, profile.risk_profile.value)
    return profile


def update_profile(profile: Profile, patch: dict[str, Any]) -> Profile:
    """Apply a partial update to the assessment fields. Streak and timestamps are not editable."""
    unknown = set(patch) - EDITABLE_FIELDS
    if unknown:
        raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")

    changes: dict[str, Any] = {}
    if "name" in patch:
        changes["name"] = _name(patch["name"])
    if "monthly_income" in patch:
        changes["monthly_income"] = _amount(patch["monthly_income"], "monthly_income")
    if "monthly_expenses" in patch:
        changes["monthly_expenses"] = _amount(patch["monthly_expenses"], "monthly_expenses")
    if "risk_profile" in patch:
        changes["risk_profile"] = _risk(patch["risk_profile"])

    return replace(profile, **changes)


def daily_surplus(profile: Profile) -> Decimal:
    """Surplus spread over a 30-day month, in whole units."""
    return round_to_unit(profile.surplus() / Decimal(DAYS_PER_MONTH))
