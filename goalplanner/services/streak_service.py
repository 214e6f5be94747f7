"""
Daily check-in streak state machine.

Two named transitions share the day-delta rules but differ on same-day events:
- `explicit_check_in` always refreshes `last_check_in`; a same-day repeat
  leaves the streak count alone
- `contribution_check_in` only fires once at least a day has passed, so
  repeated same-day contributions are a no-op for the profile
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum

from ..models import Profile

logger = logging.getLogger(__name__)

WEEKLY_STREAK_DAYS = 7
CONSISTENCY_WINDOW_DAYS = 30
CHAMPION_STREAK_DAYS = 30


class StreakTier(str, Enum):
    NONE = "none"
    BUILDING = "building"
    HABIT = "habit"
    CHAMPION = "champion"


@dataclass(frozen=True)
class StreakTransition:
    profile: Profile
    days_since_last_check_in: int
    applied: bool
    weekly_streak: bool


def days_since_last_check_in(profile: Profile, now: datetime) -> int:
    """Whole elapsed days, floored. A clock that moved backwards counts as the same day."""
    elapsed = (now - profile.last_check_in).total_seconds() / timedelta(days=1).total_seconds()
    return max(0, math.floor(elapsed))


def is_weekly_streak(streak_days: int) -> bool:
    return streak_days > 0 and streak_days % WEEKLY_STREAK_DAYS == 0


def _next_streak(streak_days: int, days_since: int) -> int:
    if days_since == 0:
        return streak_days
    if days_since == 1:
        return streak_days + 1
    return 1


def explicit_check_in(profile: Profile, now: datetime) -> StreakTransition:
    days_since = days_since_last_check_in(profile, now)
    streak_days = _next_streak(profile.streak_days, days_since)
    updated = replace(profile, streak_days=streak_days, last_check_in=now)

    logger.info(
        "Check-in for user %s: %s day(s) since last, streak %s -> %s",
        profile.user_id,
        days_since,
        profile.streak_days,
        streak_days,
    )
    return StreakTransition(
        profile=updated,
        days_since_last_check_in=days_since,
        applied=True,
        weekly_streak=is_weekly_streak(streak_days),
    )


def contribution_check_in(profile: Profile, now: datetime) -> StreakTransition:
    days_since = days_since_last_check_in(profile, now)
    if days_since < 1:
        return StreakTransition(
            profile=profile,
            days_since_last_check_in=days_since,
            applied=False,
            weekly_streak=False,
        )

    streak_days = _next_streak(profile.streak_days, days_since)
    updated = replace(profile, streak_days=streak_days, last_check_in=now)

    logger.info(
        "Contribution counted as check-in for user %s: streak %s -> %s",
        profile.user_id,
        profile.streak_days,
        streak_days,
    )
    return StreakTransition(
        profile=updated,
        days_since_last_check_in=days_since,
        applied=True,
        weekly_streak=is_weekly_streak(streak_days),
    )


def is_checked_in_today(profile: Profile, now: datetime) -> bool:
    """Calendar-date comparison in `now`'s timezone."""
    last = profile.last_check_in
    if now.tzinfo is not None and last.tzinfo is not None:
        last = last.astimezone(now.tzinfo)
    return last.date() == now.date()


def streak_tier(streak_days: int) -> StreakTier:
    if streak_days <= 0:
        return StreakTier.NONE
    if streak_days < WEEKLY_STREAK_DAYS:
        return StreakTier.BUILDING
    if streak_days < CHAMPION_STREAK_DAYS:
        return StreakTier.HABIT
    return StreakTier.CHAMPION


def consistency_pct(streak_days: int) -> Decimal:
    """Share of the last 30 days covered by the current streak, capped at 100."""
    ratio = Decimal(streak_days) * Decimal(100) / Decimal(CONSISTENCY_WINDOW_DAYS)
    return min(ratio, Decimal(100)).quantize(Decimal("0.01"))
