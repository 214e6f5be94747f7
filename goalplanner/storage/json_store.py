"""
File-backed store: one directory per user holding profile.json and goals.json.

File I/O runs in a worker thread so request handlers never block the event loop.
"""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
from collections.abc import Sequence
from pathlib import Path
from uuid import UUID

from pydantic import TypeAdapter, ValidationError as RecordError

from ..errors import PersistenceError
from ..models import Goal, Profile
from ..schemas import GoalRecord, ProfileRecord

logger = logging.getLogger(__name__)

PROFILE_FILE = "profile.json"
GOALS_FILE = "goals.json"

_goal_list = TypeAdapter(list[GoalRecord])


class JsonFileStore:
    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def _user_dir(self, user_id: UUID) -> Path:
        return self.root / str(user_id)

    def _read(self, path: Path) -> bytes | None:
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.error("Failed to read %s: %s", path, exc)
            raise PersistenceError(f"Could not read {path.name}") from exc

    def _write(self, path: Path, payload: bytes) -> None:
        # Write to a sibling temp file and rename so readers never see a partial file.
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
            try:
                with os.fdopen(fd, "wb") as handle:
                    handle.write(payload)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            logger.error("Failed to write %s: %s", path, exc)
            raise PersistenceError(f"Could not write {path.name}") from exc

    async def load_profile(self, user_id: UUID) -> Profile | None:
        raw = await asyncio.to_thread(self._read, self._user_dir(user_id) / PROFILE_FILE)
        if raw is None:
            return None
        try:
            return ProfileRecord.model_validate_json(raw).to_profile()
        except RecordError as exc:
            logger.error("Corrupt profile for user %s: %s", user_id, exc)
            raise PersistenceError("Stored profile is malformed") from exc

    async def save_profile(self, profile: Profile) -> None:
        payload = ProfileRecord.from_profile(profile).model_dump_json(indent=2).encode("utf-8")
        await asyncio.to_thread(self._write, self._user_dir(profile.user_id) / PROFILE_FILE, payload)

    async def load_goals(self, user_id: UUID) -> list[Goal]:
        raw = await asyncio.to_thread(self._read, self._user_dir(user_id) / GOALS_FILE)
        if raw is None:
            return []
        try:
            records = _goal_list.validate_json(raw)
        except RecordError as exc:
            logger.error("Corrupt goals for user %s: %s", user_id, exc)
            raise PersistenceError("Stored goals are malformed") from exc
        return [record.to_goal() for record in records]

    async def save_goals(self, user_id: UUID, goals: Sequence[Goal]) -> None:
        records = [GoalRecord.from_goal(goal) for goal in goals]
        payload = _goal_list.dump_json(records, indent=2)
        await asyncio.to_thread(self._write, self._user_dir(user_id) / GOALS_FILE, payload)
