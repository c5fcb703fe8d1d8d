"""Service for saving finalized workouts and feeding them into the cycle."""
from datetime import datetime, timezone
from typing import Optional

from liftcycle.config.features import FeatureSet
from liftcycle.config.workout_templates import TemplateCatalog
from liftcycle.core.exceptions import PersistenceError, ValidationError
from liftcycle.core.logging import get_logger
from liftcycle.core.metrics import track_workout_saved
from liftcycle.repositories.workout_repository import WorkoutRepository
from liftcycle.schemas.workout import (
    SaveWorkoutResponse,
    SetRecord,
    StartedSession,
    WorkoutSession,
    WorkoutTemplate,
)
from liftcycle.services.cycle_tracker import CycleTracker
from liftcycle.services.offline_queue import OfflineQueue, QueuedWorkout, ReplayReport
from liftcycle.services.session_tracker import SessionTracker, evaluate_completion


logger = get_logger(__name__)

OFFLINE_MESSAGE = "Working offline: workout saved locally and will be retried"


class WorkoutService:
    """Persists workouts and hands completed ones to the cycle tracker.

    Completion is re-derived here from the template rather than trusted from
    the caller. When the store is unreachable the workout goes to the offline
    queue and the caller gets an offline response instead of an error.
    """

    def __init__(
        self,
        catalog: TemplateCatalog,
        workouts: WorkoutRepository,
        cycle_tracker: CycleTracker,
        offline_queue: OfflineQueue,
        features: Optional[FeatureSet] = None,
    ):
        """Initialize the service.

        Args:
            catalog: Template registry used to re-check completion
            workouts: Repository for finalized workouts and drafts
            cycle_tracker: Receives every completed workout
            offline_queue: Local fallback for saves that fail
            features: Resolved feature flags
        """
        self._catalog = catalog
        self._workouts = workouts
        self._tracker = cycle_tracker
        self._queue = offline_queue
        self._features = features or FeatureSet()

    def _template(self, template_key: str) -> WorkoutTemplate:
        template = self._catalog.get(template_key)
        if template is None:
            raise ValidationError("template_key", f"unknown template '{template_key}'")
        return template

    def _prepare(self, session: WorkoutSession) -> tuple[WorkoutSession, bool]:
        template = self._template(session.template_key)

        names = {spec.name for spec in template.exercises}
        mentioned = set(session.sets) | set(session.exercise_rpe) | set(session.skipped_exercises)
        stray = sorted(mentioned - names)
        if stray:
            raise ValidationError("exercise", f"not part of '{template.key}': {stray}")

        # One record per target set; an exercise with no records yet gets empty ones
        sets = dict(session.sets)
        for spec in template.exercises:
            records = sets.get(spec.name)
            if records is None:
                sets[spec.name] = [SetRecord() for _ in range(spec.target_sets)]
            elif len(records) != spec.target_sets:
                raise ValidationError(
                    "sets",
                    f"{spec.name} takes {spec.target_sets} set records, got {len(records)}",
                )
        session = session.model_copy(update={"sets": sets})

        completed = evaluate_completion(
            session, template, self._features.require_rpe_for_empty_exercises
        )
        session = session.model_copy(update={
            "is_optional": not template.mandatory,
            "completed_at": (session.completed_at or datetime.now(timezone.utc)) if completed else None,
        })
        return session, completed

    async def start_session(
        self,
        tracker: SessionTracker,
        template_key: str,
        bodyweight: Optional[float] = None,
    ) -> StartedSession:
        """Open a session on the tracker, resuming the cached draft when there is one.

        The most recent stored workout of the template is loaded alongside for
        progressive-overload display and as the source of a remembered bodyweight.
        """
        template = self._template(template_key)
        draft = await self._workouts.get_draft(template_key)
        previous = await self._workouts.latest_for_template(template_key)

        if draft is not None:
            tracker.resume_session(template, draft, previous)
            if bodyweight is not None and bodyweight != draft.bodyweight:
                tracker.set_bodyweight(bodyweight)
        else:
            tracker.init_session(template, previous, bodyweight)

        logger.info(
            "session_started",
            user_id=self._workouts.user_id,
            template_key=template_key,
            resumed=draft is not None,
        )
        return StartedSession(
            session=tracker.session,
            previous=previous,
            resumed=draft is not None,
            summary=tracker.summary(),
        )

    async def save_workout(
        self,
        session: WorkoutSession,
        queue_on_failure: bool = True,
    ) -> SaveWorkoutResponse:
        """Save a workout and, when complete, count it toward the open cycle.

        A workout that was already stored as complete keeps the cycle it was
        credited to and is not counted again.

        Args:
            session: Workout submitted by the client
            queue_on_failure: Queue locally on PersistenceError instead of raising

        Returns:
            Save outcome including cycle progress and any closure event
        """
        session, completed = self._prepare(session)
        user_id = self._workouts.user_id

        try:
            state = await self._tracker.get_state()
            counted_in = await self._workouts.counted_cycle(session.date, session.template_key)
            if counted_in is not None:
                await self._workouts.save(session, counted_in)
                progress = None
            else:
                await self._workouts.save(session, state.cycle_number)
                progress = await self._tracker.record_completion(session.template_key) if completed else None
        except PersistenceError as e:
            if not queue_on_failure:
                raise
            self._queue.enqueue(user_id, session, error=e.message)
            track_workout_saved("offline")
            logger.warning(
                "workout_save_queued",
                user_id=user_id,
                template_key=session.template_key,
                error=e.message,
            )
            return SaveWorkoutResponse(
                workout=session,
                completed=completed,
                offline=True,
                message=OFFLINE_MESSAGE,
            )

        track_workout_saved("completed" if completed else "partial")

        if completed:
            await self._discard_draft(session.template_key)

        closed = progress.closed if progress else None
        logger.info(
            "workout_saved",
            user_id=user_id,
            template_key=session.template_key,
            completed=completed,
            cycle_number=counted_in or state.cycle_number,
            already_counted=counted_in is not None,
            cycle_closed=closed is not None,
        )
        return SaveWorkoutResponse(
            workout=session,
            completed=completed,
            cycle=progress.state if progress else state,
            cycle_closed=closed,
            analysis_scheduled=closed is not None and self._features.auto_trigger_analysis,
        )

    async def _discard_draft(self, template_key: str) -> None:
        try:
            await self._workouts.delete_draft(template_key)
        except PersistenceError as e:
            # Stale drafts are overwritten by the next session of this template
            logger.warning("draft_delete_failed", template_key=template_key, error=e.message)

    async def replay_offline(self) -> ReplayReport:
        """Retry every queued save for this user."""

        async def _save(entry: QueuedWorkout) -> None:
            await self.save_workout(entry.workout, queue_on_failure=False)

        report = await self._queue.replay(_save, user_id=self._workouts.user_id)
        logger.info(
            "offline_replay_finished",
            replayed=len(report.replayed),
            remaining=len(report.remaining),
        )
        return report

    async def list_workouts(self, limit: int = 50) -> list[WorkoutSession]:
        return await self._workouts.list_recent(limit=limit)
