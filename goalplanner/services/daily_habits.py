from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from ..errors import NotFoundError


class Reflection(str, Enum):
    GOOD = "good"
    OKAY = "okay"
    SKIP = "skip"


@dataclass(frozen=True)
class SavingHabit:
    key: str
    text: str
    savings: Decimal


SAVING_HABITS: tuple[SavingHabit, ...] = (
    SavingHabit("skipped_coffee", "Skipped coffee/tea outside", Decimal("50")),
    SavingHabit("packed_lunch", "Packed lunch instead of ordering", Decimal("150")),
    SavingHabit("public_transport", "Used public transport instead of cab", Decimal("100")),
    SavingHabit("cancelled_subscription", "Cancelled an unnecessary subscription", Decimal("200")),
    SavingHabit("skipped_impulse_buy", "Skipped online shopping impulse", Decimal("300")),
)

_HABITS_BY_KEY = {habit.key: habit for habit in SAVING_HABITS}


def get_habit(key: str) -> SavingHabit:
    try:
        return _HABITS_BY_KEY[key]
    except KeyError as exc:
        raise NotFoundError(f"Unknown habit: {key}") from exc


def resolve_habits(keys: Iterable[str]) -> tuple[SavingHabit, ...]:
    """Look up ticked habits in catalog order. Ticking one twice counts it once."""
    wanted = {get_habit(key).key for key in keys}
    return tuple(habit for habit in SAVING_HABITS if habit.key in wanted)


def habit_savings(habits: Iterable[SavingHabit]) -> Decimal:
    return sum((habit.savings for habit in habits), Decimal("0"))
