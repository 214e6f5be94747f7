"""Storage contract consumed by the planning core.

Each call is all-or-nothing from the caller's point of view. Failures are
raised as `PersistenceError`; nothing is retried here.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol
from uuid import UUID

from ..models import Goal, Profile


class PlannerStore(Protocol):
    async def load_profile(self, user_id: UUID) -> Profile | None: ...

    async def save_profile(self, profile: Profile) -> None: ...

    async def load_goals(self, user_id: UUID) -> list[Goal]:
        """Goals in insertion order."""
        ...

    async def save_goals(self, user_id: UUID, goals: Sequence[Goal]) -> None:
        """Replace the user's whole goal collection."""
        ...
