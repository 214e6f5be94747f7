"""Postgres-backed store using the shared psycopg async pool."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from contextlib import AbstractAsyncContextManager
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID

from psycopg import Error as DatabaseError

from ..database import get_db_connection
from ..errors import PersistenceError
from ..models import Goal, GoalCategory, Profile, RiskProfile

if TYPE_CHECKING:
    from psycopg import AsyncConnection
else:
    AsyncConnection = Any

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS profiles (
    user_id UUID PRIMARY KEY,
    name TEXT NOT NULL,
    monthly_income NUMERIC(14,2) NOT NULL CHECK (monthly_income >= 0),
    monthly_expenses NUMERIC(14,2) NOT NULL CHECK (monthly_expenses >= 0),
    risk_profile TEXT NOT NULL,
    streak_days INTEGER NOT NULL DEFAULT 0 CHECK (streak_days >= 0),
    last_check_in TIMESTAMPTZ NOT NULL,
    created_at TIMESTAMPTZ NOT NULL
);

CREATE TABLE IF NOT EXISTS goals (
    id UUID PRIMARY KEY,
    user_id UUID NOT NULL REFERENCES profiles(user_id) ON DELETE CASCADE,
    position INTEGER NOT NULL,
    name TEXT NOT NULL,
    emoji TEXT NOT NULL,
    target_amount NUMERIC(14,2) NOT NULL CHECK (target_amount > 0),
    current_amount NUMERIC(14,2) NOT NULL CHECK (current_amount >= 0),
    target_date TIMESTAMPTZ NOT NULL,
    category TEXT NOT NULL,
    daily_amount NUMERIC(14,2) NOT NULL,
    monthly_amount NUMERIC(14,2) NOT NULL,
    is_active BOOLEAN NOT NULL DEFAULT TRUE,
    created_at TIMESTAMPTZ NOT NULL
);
"""

ConnectionFactory = Callable[[], AbstractAsyncContextManager[AsyncConnection]]


def _profile_from_row(row: dict[str, Any]) -> Profile:
    return Profile(
        user_id=row["user_id"],
        name=row["name"],
        monthly_income=Decimal(str(row["monthly_income"])),
        monthly_expenses=Decimal(str(row["monthly_expenses"])),
        risk_profile=RiskProfile(row["risk_profile"]),
        streak_days=int(row["streak_days"]),
        last_check_in=row["last_check_in"],
        created_at=row["created_at"],
    )


def _goal_from_row(row: dict[str, Any]) -> Goal:
    return Goal(
        id=row["id"],
        user_id=row["user_id"],
        name=row["name"],
        emoji=row["emoji"],
        target_amount=Decimal(str(row["target_amount"])),
        current_amount=Decimal(str(row["current_amount"])),
        target_date=row["target_date"],
        category=GoalCategory(row["category"]),
        daily_amount=Decimal(str(row["daily_amount"])),
        monthly_amount=Decimal(str(row["monthly_amount"])),
        is_active=bool(row["is_active"]),
        created_at=row["created_at"],
    )


class PostgresStore:
    def __init__(self, connect: ConnectionFactory = get_db_connection) -> None:
        self._connect = connect

    async def ensure_schema(self) -> None:
        try:
            async with self._connect() as connection:
                async with connection.cursor() as cursor:
                    await cursor.execute(SCHEMA_SQL)
        except DatabaseError as exc:
            logger.error("Schema setup failed: %s", exc)
            raise PersistenceError("Could not create tables") from exc

    async def load_profile(self, user_id: UUID) -> Profile | None:
        try:
            async with self._connect() as connection:
                async with connection.cursor() as cursor:
                    await cursor.execute(
                        """
                        SELECT user_id, name, monthly_income, monthly_expenses, risk_profile,
                               streak_days, last_check_in, created_at
                        FROM profiles
                        WHERE user_id = %s
                        """,
                        (user_id,),
                    )
                    row = await cursor.fetchone()
        except DatabaseError as exc:
            logger.error("Failed to load profile for user %s: %s", user_id, exc)
            raise PersistenceError("Could not load profile") from exc

        if row is None:
            return None
        return _profile_from_row(row)

    async def save_profile(self, profile: Profile) -> None:
        # created_at is never overwritten once the row exists.
        try:
            async with self._connect() as connection:
                async with connection.cursor() as cursor:
                    await cursor.execute(
                        """
                        INSERT INTO profiles (user_id, name, monthly_income, monthly_expenses, risk_profile,
                                              streak_days, last_check_in, created_at)
                        VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                        ON CONFLICT (user_id) DO UPDATE
                        SET name = EXCLUDED.name,
                            monthly_income = EXCLUDED.monthly_income,
                            monthly_expenses = EXCLUDED.monthly_expenses,
                            risk_profile = EXCLUDED.risk_profile,
                            streak_days = EXCLUDED.streak_days,
                            last_check_in = EXCLUDED.last_check_in
                        """,
                        (
                            profile.user_id,
                            profile.name,
                            profile.monthly_income,
                            profile.monthly_expenses,
                            profile.risk_profile.value,
                            profile.streak_days,
                            profile.last_check_in,
                            profile.created_at,
                        ),
                    )
        except DatabaseError as exc:
            logger.error("Failed to save profile for user %s: %s", profile.user_id, exc)
            raise PersistenceError("Could not save profile") from exc

    async def load_goals(self, user_id: UUID) -> list[Goal]:
        try:
            async with self._connect() as connection:
                async with connection.cursor() as cursor:
                    await cursor.execute(
                        """
                        SELECT id, user_id, name, emoji, target_amount, current_amount, target_date,
                               category, daily_amount, monthly_amount, is_active, created_at
                        FROM goals
                        WHERE user_id = %s
                        ORDER BY position ASC
                        """,
                        (user_id,),
                    )
                    rows = await cursor.fetchall()
        except DatabaseError as exc:
            logger.error("Failed to load goals for user %s: %s", user_id, exc)
            raise PersistenceError("Could not load goals") from exc

        return [_goal_from_row(row) for row in rows]

    async def save_goals(self, user_id: UUID, goals: Sequence[Goal]) -> None:
        """Delete and re-insert the collection in one transaction."""
        try:
            async with self._connect() as connection:
                async with connection.transaction():
                    async with connection.cursor() as cursor:
                        await cursor.execute("DELETE FROM goals WHERE user_id = %s", (user_id,))
                        for position, goal in enumerate(goals):
                            await cursor.execute(
                                """
                                INSERT INTO goals (id, user_id, position, name, emoji, target_amount,
                                                   current_amount, target_date, category, daily_amount,
                                                   monthly_amount, is_active, created_at)
                                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                                """,
                                (
                                    goal.id,
                                    user_id,
                                    position,
                                    goal.name,
                                    goal.emoji,
                                    goal.target_amount,
                                    goal.current_amount,
                                    goal.target_date,
                                    goal.category.value,
                                    goal.daily_amount,
                                    goal.monthly_amount,
                                    goal.is_active,
                                    goal.created_at,
                                ),
                            )
        except DatabaseError as exc:
            logger.error("Failed to save goals for user %s: %s", user_id, exc)
            raise PersistenceError("Could not save goals") from exc
