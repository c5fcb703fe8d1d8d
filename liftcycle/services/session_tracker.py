"""
Session tracking for one in-progress workout.

The tracker owns the active WorkoutSession, applies set/RPE/skip mutations to
it and recomputes completion after every mutation. Completion is derived from
the session data, never set from outside.

Side effects are delivered to listeners rather than performed here:
- "change": every mutation (the debounced draft cache subscribes to this)
- "complete": the completion predicate flipped from false to true
- "rest_timer": a set became complete while no rest timer was running
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable

from pydantic import ValidationError as PydanticValidationError

from liftcycle.config.features import FeatureSet
from liftcycle.core.exceptions import ValidationError
from liftcycle.models.enums import TrackingType
from liftcycle.schemas.workout import (
    SessionSummary,
    SetRecord,
    WorkoutSession,
    WorkoutTemplate,
)
from liftcycle.services.exercise_classifier import classify, is_set_complete


logger = logging.getLogger(__name__)

DEFAULT_REST_SECONDS = 90

SESSION_EVENTS = ("change", "complete", "rest_timer")


class RestTimer:
    """Countdown state for the between-sets rest period."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._ends_at: float | None = None
        self.exercise_name: str | None = None
        self.duration: int = 0

    @property
    def is_running(self) -> bool:
        return self._ends_at is not None and self._clock() < self._ends_at

    def remaining(self) -> float:
        if not self.is_running:
            return 0.0
        return self._ends_at - self._clock()

    def start(self, seconds: int, exercise_name: str | None = None) -> None:
        self._ends_at = self._clock() + seconds
        self.duration = seconds
        self.exercise_name = exercise_name

    def cancel(self) -> None:
        self._ends_at = None
        self.exercise_name = None


def completed_set_count(exercise_name: str, records: list[SetRecord]) -> int:
    return sum(1 for record in records if is_set_complete(exercise_name, record))


def evaluate_completion(
    session: WorkoutSession,
    template: WorkoutTemplate,
    require_rpe_for_empty: bool = True,
) -> bool:
    """
    Whole-workout completion predicate.

    Every exercise must either be skipped, or have all of its target sets
    complete and an RPE recorded. An exercise with zero target sets is
    vacuously complete on sets; whether it still needs an RPE is controlled
    by require_rpe_for_empty.
    """
    skipped = set(session.skipped_exercises)
    for spec in template.exercises:
        if spec.name in skipped:
            continue
        done = completed_set_count(spec.name, session.sets.get(spec.name, []))
        if done < spec.target_sets:
            return False
        if spec.target_sets == 0 and not require_rpe_for_empty:
            continue
        if spec.name not in session.exercise_rpe:
            return False
    return True


class SessionTracker:
    """Accumulates set records for the active session and derives completion."""

    def __init__(
        self,
        features: FeatureSet | None = None,
        default_rest_seconds: int = DEFAULT_REST_SECONDS,
        rest_timer: RestTimer | None = None,
    ):
        self._features = features or FeatureSet()
        self._default_rest_seconds = default_rest_seconds
        self.rest_timer = rest_timer or RestTimer()
        self._listeners: dict[str, list[Callable[..., Any]]] = {name: [] for name in SESSION_EVENTS}

        self._template: WorkoutTemplate | None = None
        self._session: WorkoutSession | None = None
        self._previous: WorkoutSession | None = None
        self._touched: list[str] = []
        self._complete = False

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, event: str, callback: Callable[..., Any]) -> None:
        if event not in self._listeners:
            raise ValueError(f"Unknown session event: {event}")
        self._listeners[event].append(callback)

    def _emit(self, event: str, *args: Any) -> None:
        for callback in self._listeners[event]:
            callback(*args)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def session(self) -> WorkoutSession:
        if self._session is None:
            raise RuntimeError("No active session; call init_session() first")
        return self._session

    @property
    def template(self) -> WorkoutTemplate:
        if self._template is None:
            raise RuntimeError("No active session; call init_session() first")
        return self._template

    @property
    def is_complete(self) -> bool:
        return self._complete

    def init_session(
        self,
        template: WorkoutTemplate,
        previous_completed_session: WorkoutSession | None = None,
        bodyweight: float | None = None,
    ) -> WorkoutSession:
        """
        Start a fresh session for a template.

        Allocates target_sets empty set records per exercise. Bodyweight-type
        exercises have their weight seeded with the last known bodyweight:
        the explicit argument, else the previous session's.
        """
        known_bodyweight = bodyweight
        if known_bodyweight is None and previous_completed_session is not None:
            known_bodyweight = previous_completed_session.bodyweight

        sets: dict[str, list[SetRecord]] = {}
        for spec in template.exercises:
            seed = known_bodyweight if classify(spec.name) == TrackingType.BODYWEIGHT else None
            sets[spec.name] = [SetRecord(weight=seed) for _ in range(spec.target_sets)]

        session = WorkoutSession(
            template_key=template.key,
            bodyweight=known_bodyweight,
            sets=sets,
            is_optional=not template.mandatory,
        )
        self._start(template, session, previous_completed_session)
        logger.debug(f"Initialized session for template '{template.key}'")
        return self.session

    def resume_session(
        self,
        template: WorkoutTemplate,
        draft: WorkoutSession,
        previous_completed_session: WorkoutSession | None = None,
    ) -> WorkoutSession:
        """Pick up a cached in-progress session, padding or trimming sets to the template."""
        sets: dict[str, list[SetRecord]] = {}
        for spec in template.exercises:
            records = list(draft.sets.get(spec.name, []))[: spec.target_sets]
            records.extend(SetRecord() for _ in range(spec.target_sets - len(records)))
            sets[spec.name] = records

        names = {spec.name for spec in template.exercises}
        session = draft.model_copy(update={
            "sets": sets,
            "exercise_rpe": {k: v for k, v in draft.exercise_rpe.items() if k in names},
            "skipped_exercises": [n for n in draft.skipped_exercises if n in names],
            "is_optional": not template.mandatory,
        })
        self._start(template, session, previous_completed_session)
        logger.debug(f"Resumed cached session for template '{template.key}'")
        return self.session

    def _start(
        self,
        template: WorkoutTemplate,
        session: WorkoutSession,
        previous: WorkoutSession | None,
    ) -> None:
        self._template = template
        self._previous = previous
        self._touched = []
        self.rest_timer.cancel()
        self._session = session
        self._complete = evaluate_completion(
            session, template, self._features.require_rpe_for_empty_exercises
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def update_set(
        self,
        exercise_name: str,
        index: int,
        patch: SetRecord | dict[str, Any],
    ) -> WorkoutSession:
        """
        Replace one set record, merging a field patch into the existing record.

        Raises ValidationError for an unknown exercise, an index outside the
        target set range, or malformed set data; the session is unchanged.
        """
        records = self._records_for(exercise_name)
        if not 0 <= index < len(records):
            raise ValidationError(
                "set_index",
                f"{exercise_name} has {len(records)} sets, got index {index}",
            )

        if isinstance(patch, SetRecord):
            patch = patch.model_dump(exclude_unset=True)
        unknown = set(patch) - set(SetRecord.model_fields)
        if unknown:
            raise ValidationError("set", f"unknown fields {sorted(unknown)}")

        previous = records[index]
        try:
            updated = SetRecord.model_validate({**previous.model_dump(), **patch})
        except PydanticValidationError as exc:
            raise ValidationError("set", str(exc.errors()[0]["msg"])) from exc

        new_records = list(records)
        new_records[index] = updated
        self._replace(sets={**self.session.sets, exercise_name: new_records})
        self._touch(exercise_name)

        newly_complete = is_set_complete(exercise_name, updated) and not is_set_complete(
            exercise_name, previous
        )
        if newly_complete and not self.rest_timer.is_running:
            seconds = self.rest_seconds_for(exercise_name)
            self.rest_timer.start(seconds, exercise_name)
            self._emit("rest_timer", exercise_name, seconds)

        self._after_mutation()
        return self.session

    def record_rpe(self, exercise_name: str, value: int) -> WorkoutSession:
        self._spec_for(exercise_name)
        if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 10:
            raise ValidationError("rpe", f"RPE must be an integer from 1 to 10, got {value!r}")

        self._replace(exercise_rpe={**self.session.exercise_rpe, exercise_name: value})
        self._touch(exercise_name)
        self._after_mutation()
        return self.session

    def skip_exercise(self, exercise_name: str) -> WorkoutSession:
        self._spec_for(exercise_name)
        if exercise_name in self.session.skipped_exercises:
            return self.session

        self._replace(skipped_exercises=[*self.session.skipped_exercises, exercise_name])
        self._touch(exercise_name)
        self._after_mutation()
        return self.session

    def set_bodyweight(self, value: float) -> WorkoutSession:
        """Record today's bodyweight and back-fill empty bodyweight-exercise weights."""
        if value is None or value <= 0:
            raise ValidationError("bodyweight", f"must be positive, got {value!r}")

        sets = {}
        for name, records in self.session.sets.items():
            if classify(name) == TrackingType.BODYWEIGHT:
                records = [
                    r if r.weight else r.model_copy(update={"weight": value})
                    for r in records
                ]
            sets[name] = records
        self._replace(bodyweight=value, sets=sets)
        self._after_mutation()
        return self.session

    def set_notes(self, notes: str | None) -> WorkoutSession:
        self._replace(notes=notes or None)
        self._after_mutation()
        return self.session

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def touched_exercises(self) -> list[str]:
        """Exercises in the order they were last touched, most recent last."""
        return list(self._touched)

    def rest_seconds_for(self, exercise_name: str) -> int:
        spec = self._spec_for(exercise_name)
        if spec.rest_seconds is None:
            return self._default_rest_seconds
        return spec.rest_seconds

    def current_rest_seconds(self) -> int:
        """Rest period of the most recently touched exercise."""
        if not self._touched:
            return self._default_rest_seconds
        return self.rest_seconds_for(self._touched[-1])

    def completed_set_count(self, exercise_name: str) -> int:
        return completed_set_count(exercise_name, self._records_for(exercise_name))

    def previous_sets(self, exercise_name: str) -> list[SetRecord]:
        if self._previous is None:
            return []
        return list(self._previous.sets.get(exercise_name, []))

    def summary(self) -> SessionSummary:
        session = self.session
        completed = 0
        volume = 0.0
        for name, records in session.sets.items():
            for record in records:
                if not is_set_complete(name, record):
                    continue
                completed += 1
                if record.weight and record.reps:
                    volume += record.weight * record.reps

        rpes = list(session.exercise_rpe.values())
        return SessionSummary(
            completed_sets=completed,
            total_sets=self.template.total_target_sets,
            total_volume=volume,
            average_rpe=round(sum(rpes) / len(rpes), 2) if rpes else None,
            is_complete=self._complete,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _spec_for(self, exercise_name: str):
        spec = self.template.exercise(exercise_name)
        if spec is None:
            raise ValidationError(
                "exercise",
                f"'{exercise_name}' is not part of template '{self.template.key}'",
            )
        return spec

    def _records_for(self, exercise_name: str) -> list[SetRecord]:
        self._spec_for(exercise_name)
        return self.session.sets.get(exercise_name, [])

    def _replace(self, **changes: Any) -> None:
        self._session = self.session.model_copy(update=changes)

    def _touch(self, exercise_name: str) -> None:
        if exercise_name in self._touched:
            self._touched.remove(exercise_name)
        self._touched.append(exercise_name)

    def _after_mutation(self) -> None:
        was_complete = self._complete
        self._complete = evaluate_completion(
            self.session, self.template, self._features.require_rpe_for_empty_exercises
        )

        if self._complete and not was_complete:
            self._replace(completed_at=datetime.now(timezone.utc))
        elif was_complete and not self._complete:
            self._replace(completed_at=None)

        self._emit("change", self.session)
        if self._complete and not was_complete:
            logger.info(f"Session for '{self.template.key}' is complete")
            self._emit("complete", self.session)
