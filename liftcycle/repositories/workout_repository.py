from __future__ import annotations

from datetime import date, datetime, timezone

from liftcycle.models.enums import ItemType
from liftcycle.repositories import keys
from liftcycle.repositories.base import Repository
from liftcycle.schemas.workout import WorkoutSession


class WorkoutRepository(Repository):
    """Finalized workouts plus the in-progress draft cache."""

    async def save(self, workout: WorkoutSession, cycle_number: int) -> dict:
        sort_key = keys.workout_sk(workout.date, workout.template_key)
        item = {
            "PK": self.partition_key,
            "SK": sort_key,
            "GSI1PK": keys.workouts_by_date_pk(self.user_id),
            "GSI1SK": f"{workout.date.isoformat()}#{workout.template_key}",
            "GSI2PK": keys.cycle_index_pk(self.user_id, cycle_number),
            "GSI2SK": sort_key,
            "type": ItemType.WORKOUT.value,
            "cycle_number": cycle_number,
            "saved_at": datetime.now(timezone.utc).isoformat(),
            **workout.model_dump(mode="json"),
        }
        await self._store.put(item)
        return item

    async def get(self, workout_date: date, template_key: str) -> WorkoutSession | None:
        item = await self._store.get(self.partition_key, keys.workout_sk(workout_date, template_key))
        return _to_session(item) if item else None

    async def counted_cycle(self, workout_date: date, template_key: str) -> int | None:
        """Cycle a stored workout was credited to, or None when it never completed."""
        item = await self._store.get(self.partition_key, keys.workout_sk(workout_date, template_key))
        if item is None or not item.get("completed_at"):
            return None
        return item.get("cycle_number")

    async def list_recent(self, limit: int | None = 50) -> list[WorkoutSession]:
        items = await self._store.query_by_prefix(
            self.partition_key, keys.WORKOUT_PREFIX, descending=True, limit=limit
        )
        return [_to_session(item) for item in items]

    async def list_by_date_range(self, start: date, end: date) -> list[WorkoutSession]:
        # "~" sorts after "#<template_key>" so the end date is inclusive
        items = await self._store.query_range(
            keys.GSI_BY_DATE,
            keys.workouts_by_date_pk(self.user_id),
            (start.isoformat(), f"{end.isoformat()}~"),
        )
        return [_to_session(item) for item in items]

    async def list_for_cycle(self, cycle_number: int) -> list[WorkoutSession]:
        items = await self._store.query_range(
            keys.GSI_BY_CYCLE,
            keys.cycle_index_pk(self.user_id, cycle_number),
            (keys.WORKOUT_PREFIX, f"{keys.WORKOUT_PREFIX}~"),
        )
        return [_to_session(item) for item in items]

    async def latest_for_template(self, template_key: str) -> WorkoutSession | None:
        """Most recent finalized session of a template, for progressive-overload display."""
        for workout in await self.list_recent(limit=None):
            if workout.template_key == template_key:
                return workout
        return None

    async def save_draft(self, session: WorkoutSession) -> None:
        await self._store.put({
            "PK": self.partition_key,
            "SK": keys.session_draft_sk(session.template_key),
            "type": ItemType.SESSION_DRAFT.value,
            "cached_at": datetime.now(timezone.utc).isoformat(),
            **session.model_dump(mode="json"),
        })

    async def get_draft(self, template_key: str) -> WorkoutSession | None:
        item = await self._store.get(self.partition_key, keys.session_draft_sk(template_key))
        return _to_session(item) if item else None

    async def delete_draft(self, template_key: str) -> None:
        await self._store.delete(self.partition_key, keys.session_draft_sk(template_key))


def _to_session(item: dict) -> WorkoutSession:
    return WorkoutSession.model_validate(
        {k: v for k, v in item.items() if k in WorkoutSession.model_fields}
    )
