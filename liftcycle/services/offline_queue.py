"""
Local fallback cache for finalized workouts whose save did not reach the store.

Each queued workout is one JSON file; re-queuing the same workout (same user,
date and template) overwrites the earlier entry, so replay is last-write-wins.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from functools import partial
from pathlib import Path
from typing import Any, Awaitable, Callable

from pydantic import BaseModel, Field

from liftcycle.core.exceptions import PersistenceError
from liftcycle.schemas.workout import WorkoutSession


logger = logging.getLogger(__name__)

_UNSAFE = re.compile(r"[^A-Za-z0-9_.-]")


class QueuedWorkout(BaseModel):
    id: str
    user_id: str
    queued_at: datetime = Field(default_factory=partial(datetime.now, timezone.utc))
    attempts: int = 0
    last_error: str | None = None
    workout: WorkoutSession


class ReplayReport(BaseModel):
    replayed: list[str] = Field(default_factory=list)
    remaining: list[str] = Field(default_factory=list)


class OfflineQueue:
    def __init__(self, directory: str | Path):
        self._directory = Path(directory)

    @staticmethod
    def entry_id(user_id: str, workout: WorkoutSession) -> str:
        return _UNSAFE.sub("_", f"{user_id}-{workout.date.isoformat()}-{workout.template_key}")

    def _path(self, entry_id: str) -> Path:
        return self._directory / f"{entry_id}.json"

    def _write(self, entry: QueuedWorkout) -> None:
        self._directory.mkdir(parents=True, exist_ok=True)
        tmp = self._path(entry.id).with_suffix(".tmp")
        tmp.write_text(entry.model_dump_json(), encoding="utf-8")
        tmp.replace(self._path(entry.id))

    def enqueue(self, user_id: str, workout: WorkoutSession, error: str | None = None) -> QueuedWorkout:
        entry = QueuedWorkout(
            id=self.entry_id(user_id, workout),
            user_id=user_id,
            last_error=error,
            workout=workout,
        )
        self._write(entry)
        logger.warning(f"Queued workout '{workout.template_key}' for {user_id} offline: {error}")
        return entry

    def pending(self, user_id: str | None = None) -> list[QueuedWorkout]:
        if not self._directory.exists():
            return []
        entries = [
            QueuedWorkout.model_validate_json(path.read_text(encoding="utf-8"))
            for path in self._directory.glob("*.json")
        ]
        if user_id is not None:
            entries = [e for e in entries if e.user_id == user_id]
        return sorted(entries, key=lambda e: e.queued_at)

    def remove(self, entry_id: str) -> None:
        self._path(entry_id).unlink(missing_ok=True)

    def __len__(self) -> int:
        return len(self.pending())

    async def replay(
        self,
        save: Callable[[QueuedWorkout], Awaitable[Any]],
        user_id: str | None = None,
    ) -> ReplayReport:
        """
        Feed queued workouts, oldest first, back through save().

        An entry is removed once save() succeeds. A PersistenceError leaves it
        queued with its attempt count bumped; other errors propagate.
        """
        report = ReplayReport()
        for entry in self.pending(user_id):
            try:
                await save(entry)
            except PersistenceError as e:
                self._write(entry.model_copy(update={
                    "attempts": entry.attempts + 1,
                    "last_error": e.message,
                }))
                report.remaining.append(entry.id)
                continue
            self.remove(entry.id)
            report.replayed.append(entry.id)

        if report.replayed:
            logger.info(f"Replayed {len(report.replayed)} queued workouts")
        return report
