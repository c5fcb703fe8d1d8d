"""
Cycle tracking.

A cycle is the set of workout templates selected for analysis. The tracker has
one persisted state, the open cycle; closing a cycle archives it and opens
the next one immediately, so "closed" is a transition rather than a state.

Transitions:
1. Selection change: the selected template set differs by value from the
   stored one. Completed credit is discarded (or intersected with the new
   selection when reset_cycle_on_selection_change is off).
2. Workout completion: a selected, not-yet-completed template key is added.
   Unselected keys and repeats are no-ops, so retries are safe.
3. Closure: once completed equals selected, a CycleClosed event is emitted,
   the cycle is archived and a fresh one opens with the same selection.

The tracker knows nothing about analysis; listeners receive CycleClosed after
the new cycle has been persisted.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from liftcycle.config.features import FeatureSet
from liftcycle.config.workout_templates import TemplateCatalog
from liftcycle.core.exceptions import ValidationError
from liftcycle.core.metrics import track_cycle_closed, track_cycle_reset
from liftcycle.repositories.cycle_repository import CycleRepository, ProfileRepository
from liftcycle.schemas.analysis import UserProfile
from liftcycle.schemas.cycle import CycleArchive, CycleClosed, CycleProgress, CycleState


logger = logging.getLogger(__name__)

CycleClosedListener = Callable[[CycleClosed], Awaitable[Any] | Any]


class CycleTracker:
    """Persistent state machine over the open training cycle."""

    def __init__(
        self,
        catalog: TemplateCatalog,
        cycles: CycleRepository,
        profiles: ProfileRepository,
        features: FeatureSet | None = None,
        lock: asyncio.Lock | None = None,
    ):
        self._catalog = catalog
        self._cycles = cycles
        self._profiles = profiles
        self._features = features or FeatureSet()
        self._lock = lock or asyncio.Lock()
        self._listeners: list[CycleClosedListener] = []

    def add_listener(self, listener: CycleClosedListener) -> None:
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_state(self) -> CycleState:
        """Current open cycle, creating the first one on first use."""
        state = await self._cycles.get_current()
        if state is not None:
            return state

        profile = await self._profiles.get()
        overrides = profile.include_in_analysis if profile else {}
        state = CycleState(selected_workout_keys=self._catalog.selected_keys(overrides))
        await self._cycles.save_current(state)
        logger.info(
            f"Started cycle {state.cycle_number} with {len(state.selected_workout_keys)} workouts"
        )
        return state

    async def list_archives(self) -> list[CycleArchive]:
        return await self._cycles.list_archives()

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def configure(self, include_in_analysis: dict[str, bool]) -> CycleProgress:
        """Store per-template inclusion overrides and apply the resulting selection."""
        unknown = sorted(key for key in include_in_analysis if key not in self._catalog)
        if unknown:
            raise ValidationError("include_in_analysis", f"unknown template keys {unknown}")

        async with self._lock:
            profile = await self._profiles.get() or UserProfile()
            overrides = {**profile.include_in_analysis, **include_in_analysis}
            await self._profiles.save(profile.model_copy(update={"include_in_analysis": overrides}))
            progress = await self._apply_selection(self._catalog.selected_keys(overrides))

        if progress.closed is not None:
            await self._notify(progress.closed)
        return progress

    async def apply_selection(self, selected_keys: list[str]) -> CycleProgress:
        unknown = sorted(key for key in selected_keys if key not in self._catalog)
        if unknown:
            raise ValidationError("selected_workout_keys", f"unknown template keys {unknown}")

        async with self._lock:
            progress = await self._apply_selection(selected_keys)

        if progress.closed is not None:
            await self._notify(progress.closed)
        return progress

    async def _apply_selection(self, selected_keys: list[str]) -> CycleProgress:
        state = await self.get_state()
        ordered = [key for key in self._catalog.keys() if key in set(selected_keys)]
        if set(ordered) == set(state.selected_workout_keys):
            return CycleProgress(state=state)

        if self._features.reset_cycle_on_selection_change:
            completed: list[str] = []
        else:
            done = set(state.completed_workout_keys)
            completed = [key for key in ordered if key in done]

        dropped = len(state.completed_workout_keys) - len(completed)
        state = state.model_copy(update={
            "selected_workout_keys": ordered,
            "completed_workout_keys": completed,
            "version": state.version + 1,
        })
        track_cycle_reset()
        logger.info(
            f"Cycle {state.cycle_number} selection changed to {ordered}; "
            f"dropped {dropped} completed workouts"
        )

        if state.is_closable:
            closed, state = await self._close(state)
            return CycleProgress(state=state, was_reset=True, closed=closed)

        await self._cycles.save_current(state)
        return CycleProgress(state=state, was_reset=True)

    async def record_completion(self, template_key: str) -> CycleProgress:
        """
        Count a completed workout toward the open cycle.

        Raises PersistenceError when the store is unreachable; nothing is
        counted in that case and the call can simply be repeated.
        """
        async with self._lock:
            state = await self.get_state()
            if template_key not in state.selected_workout_keys:
                logger.debug(f"Workout '{template_key}' is not selected for cycle {state.cycle_number}")
                return CycleProgress(state=state)
            if template_key in state.completed_workout_keys:
                return CycleProgress(state=state)

            done = {*state.completed_workout_keys, template_key}
            state = state.model_copy(update={
                "completed_workout_keys": [k for k in state.selected_workout_keys if k in done],
                "version": state.version + 1,
            })
            logger.info(
                f"Workout '{template_key}' counted toward cycle {state.cycle_number} "
                f"({len(state.completed_workout_keys)}/{len(state.selected_workout_keys)})"
            )

            if not state.is_closable:
                await self._cycles.save_current(state)
                return CycleProgress(state=state, counted=True)

            closed, state = await self._close(state)

        await self._notify(closed)
        return CycleProgress(state=state, counted=True, closed=closed)

    async def _close(self, state: CycleState) -> tuple[CycleClosed, CycleState]:
        now = datetime.now(timezone.utc)
        await self._cycles.archive(CycleArchive(
            cycle_number=state.cycle_number,
            started_at=state.started_at,
            ended_at=now,
            workout_keys=list(state.completed_workout_keys),
            selected_count=len(state.selected_workout_keys),
        ))

        next_state = CycleState(
            cycle_number=state.cycle_number + 1,
            selected_workout_keys=list(state.selected_workout_keys),
            completed_workout_keys=[],
            started_at=now,
            version=state.version + 1,
        )
        await self._cycles.save_current(next_state)

        track_cycle_closed()
        logger.info(f"Cycle {state.cycle_number} closed; cycle {next_state.cycle_number} opened")
        closed = CycleClosed(
            cycle_number=state.cycle_number,
            completed_workout_keys=list(state.completed_workout_keys),
            selected_count=len(state.selected_workout_keys),
            closed_at=now,
        )
        return closed, next_state

    async def _notify(self, event: CycleClosed) -> None:
        for listener in self._listeners:
            try:
                result = listener(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                # The next cycle is already open; a listener cannot undo that
                logger.exception(f"Cycle closed listener failed for cycle {event.cycle_number}")
