"""Wiring of shared, process-wide objects into per-user services."""
from __future__ import annotations

import asyncio
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Callable

from liftcycle.config.features import FeatureSet
from liftcycle.config.settings import Settings
from liftcycle.config.workout_templates import TemplateCatalog
from liftcycle.core.exceptions import DomainError
from liftcycle.core.logging import get_logger
from liftcycle.llm import LLMProvider, get_llm_provider
from liftcycle.repositories import (
    AnalysisRepository,
    CycleRepository,
    ItemStore,
    ProfileRepository,
    WorkoutRepository,
)
from liftcycle.schemas.cycle import CycleClosed
from liftcycle.schemas.workout import StartedSession, WorkoutSession
from liftcycle.services.cycle_analysis import AnalysisDispatcher, CycleAnalysisService
from liftcycle.services.cycle_tracker import CycleTracker
from liftcycle.services.offline_queue import OfflineQueue
from liftcycle.services.session_autosave import SessionAutosave
from liftcycle.services.session_tracker import SessionTracker
from liftcycle.services.workout_service import WorkoutService


logger = get_logger(__name__)


@dataclass
class ServiceContainer:
    """Holds the catalog, store, flags and background workers for the app.

    One container lives on app.state; route dependencies ask it for services
    bound to the caller's identity.
    """
    settings: Settings
    catalog: TemplateCatalog
    store: ItemStore
    features: FeatureSet
    dispatcher: AnalysisDispatcher
    offline_queue: OfflineQueue
    provider_factory: Callable[[], LLMProvider] = get_llm_provider
    cycle_locks: defaultdict[str, asyncio.Lock] = field(
        default_factory=lambda: defaultdict(asyncio.Lock)
    )
    finalize_tasks: set[asyncio.Task] = field(default_factory=set)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        store: ItemStore,
        catalog: TemplateCatalog | None = None,
        features: FeatureSet | None = None,
        provider_factory: Callable[[], LLMProvider] | None = None,
    ) -> "ServiceContainer":
        return cls(
            settings=settings,
            catalog=catalog or TemplateCatalog(),
            store=store,
            features=features or FeatureSet.from_flags(),
            dispatcher=AnalysisDispatcher(
                max_attempts=settings.analysis_max_attempts,
                backoff_seconds=settings.analysis_backoff_seconds,
            ),
            offline_queue=OfflineQueue(settings.offline_queue_dir),
            provider_factory=provider_factory or get_llm_provider,
        )

    def workout_repository(self, user_id: str) -> WorkoutRepository:
        return WorkoutRepository(self.store, user_id)

    def cycle_tracker(self, user_id: str) -> CycleTracker:
        tracker = CycleTracker(
            self.catalog,
            CycleRepository(self.store, user_id),
            ProfileRepository(self.store, user_id),
            features=self.features,
            lock=self.cycle_locks[user_id],
        )
        if self.features.auto_trigger_analysis:

            def _schedule(event: CycleClosed) -> None:
                self.dispatcher.schedule(self.analysis_service(user_id), event.cycle_number)

            tracker.add_listener(_schedule)
        return tracker

    def analysis_service(self, user_id: str) -> CycleAnalysisService:
        return CycleAnalysisService(
            self.provider_factory(),
            WorkoutRepository(self.store, user_id),
            CycleRepository(self.store, user_id),
            ProfileRepository(self.store, user_id),
            AnalysisRepository(self.store, user_id),
            timeout=self.settings.llm_timeout,
            max_tokens=self.settings.llm_max_tokens,
            temperature=self.settings.llm_temperature,
            default_bodyweight=self.settings.default_bodyweight,
            default_experience_level=self.settings.default_experience_level,
        )

    def analysis_repository(self, user_id: str) -> AnalysisRepository:
        return AnalysisRepository(self.store, user_id)

    def workout_service(self, user_id: str) -> WorkoutService:
        return WorkoutService(
            self.catalog,
            self.workout_repository(user_id),
            self.cycle_tracker(user_id),
            self.offline_queue,
            features=self.features,
        )

    def session_tracker(self, user_id: str) -> tuple[SessionTracker, SessionAutosave]:
        """A session tracker whose mutations are draft-cached for this user.

        When the session turns complete its pending draft write is dropped and
        the finalized session is saved through the workout service, which
        counts it toward the open cycle.
        """
        tracker = SessionTracker(
            features=self.features,
            default_rest_seconds=self.settings.default_rest_seconds,
        )
        autosave = SessionAutosave(
            self.workout_repository(user_id),
            debounce_seconds=self.settings.session_autosave_debounce_seconds,
        )
        autosave.attach(tracker)
        service = self.workout_service(user_id)

        def _on_complete(session: WorkoutSession) -> None:
            autosave.cancel(session.template_key)
            task = asyncio.get_running_loop().create_task(self._finalize(service, session))
            self.finalize_tasks.add(task)
            task.add_done_callback(self.finalize_tasks.discard)

        tracker.add_listener("complete", _on_complete)
        return tracker, autosave

    async def _finalize(self, service: WorkoutService, session: WorkoutSession) -> None:
        try:
            await service.save_workout(session)
        except DomainError as e:
            logger.error(
                "session_finalize_failed",
                template_key=session.template_key,
                code=e.code,
                error=e.message,
            )

    async def open_session(
        self,
        user_id: str,
        template_key: str,
        bodyweight: float | None = None,
    ) -> tuple[SessionTracker, SessionAutosave, StartedSession]:
        """Start or resume the session of a template for this user."""
        tracker, autosave = self.session_tracker(user_id)
        started = await self.workout_service(user_id).start_session(tracker, template_key, bodyweight)
        return tracker, autosave, started

    async def drain_sessions(self) -> None:
        """Wait for completed sessions that are still being saved."""
        while self.finalize_tasks:
            await asyncio.gather(*list(self.finalize_tasks))
