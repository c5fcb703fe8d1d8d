"""Tests for the live session path wired by ServiceContainer.

A session opened through the container caches drafts while it is being
filled in, and once it turns complete it is saved and counted toward the
open cycle without any further call from the client.
"""
from datetime import date

import pytest

from liftcycle.config.features import FeatureSet
from liftcycle.repositories import CycleRepository, WorkoutRepository
from liftcycle.schemas.workout import SetRecord, WorkoutSession
from liftcycle.services.container import ServiceContainer

from tests.conftest import USER_ID, FakeProvider, completed_bench_session


@pytest.fixture
def container(settings, store, abc_catalog):
    return ServiceContainer.from_settings(
        settings,
        store,
        catalog=abc_catalog,
        features=FeatureSet(auto_trigger_analysis=False),
        provider_factory=lambda: FakeProvider(),
    )


def fill_bench(tracker, weight=225, reps=5, rpe=8):
    for index in range(3):
        tracker.update_set("Bench", index, {"weight": weight, "reps": reps})
    tracker.record_rpe("Bench", rpe)


class TestSessionHandOff:
    """A completed live session is finalized and counted toward the cycle."""

    @pytest.mark.asyncio
    async def test_completed_session_counts_toward_cycle(self, container, store):
        tracker, autosave, _ = await container.open_session(USER_ID, "A")

        fill_bench(tracker)
        await container.drain_sessions()

        assert tracker.is_complete is True
        state = await CycleRepository(store, USER_ID).get_current()
        assert state.completed_workout_keys == ["A"]

        workouts = WorkoutRepository(store, USER_ID)
        saved = await workouts.get(tracker.session.date, "A")
        assert saved.completed_at is not None
        assert saved.sets["Bench"][2] == SetRecord(weight=225, reps=5)
        assert await workouts.get_draft("A") is None
        assert autosave.pending_keys == []

    @pytest.mark.asyncio
    async def test_last_session_of_cycle_closes_it(self, container, store):
        await container.cycle_tracker(USER_ID).apply_selection(["A"])
        tracker, _, _ = await container.open_session(USER_ID, "A")

        fill_bench(tracker)
        await container.drain_sessions()

        cycles = CycleRepository(store, USER_ID)
        assert (await cycles.get_current()).cycle_number == 2
        assert [a.workout_keys for a in await cycles.list_archives()] == [["A"]]

    @pytest.mark.asyncio
    async def test_incomplete_session_only_cached(self, container, store):
        tracker, autosave, _ = await container.open_session(USER_ID, "A")

        tracker.update_set("Bench", 0, {"weight": 225, "reps": 5})
        await autosave.flush()
        await container.drain_sessions()

        workouts = WorkoutRepository(store, USER_ID)
        assert (await workouts.get_draft("A")).sets["Bench"][0].weight == 225
        assert await workouts.list_recent() == []
        assert (await CycleRepository(store, USER_ID).get_current()).completed_workout_keys == []

    @pytest.mark.asyncio
    async def test_failed_finalize_is_logged_not_raised(self, settings, failing_store, abc_catalog):
        container = ServiceContainer.from_settings(
            settings,
            failing_store,
            catalog=abc_catalog,
            features=FeatureSet(auto_trigger_analysis=False),
            provider_factory=lambda: FakeProvider(),
        )
        tracker, _ = container.session_tracker(USER_ID)
        tracker.init_session(abc_catalog.get("A"))

        fill_bench(tracker)
        await container.drain_sessions()

        # The store is down, so the finalized session waits in the offline queue
        assert [e.workout.template_key for e in container.offline_queue.pending(USER_ID)] == ["A"]


class TestSessionResume:
    """Revisiting a template picks up where the cached draft left off."""

    @pytest.mark.asyncio
    async def test_abandoned_session_resumes_from_draft(self, container, store):
        tracker, autosave, _ = await container.open_session(USER_ID, "A")
        tracker.update_set("Bench", 0, {"weight": 225, "reps": 5})
        tracker.set_notes("felt heavy")
        await autosave.flush()

        resumed, _, started = await container.open_session(USER_ID, "A")

        assert started.resumed is True
        assert resumed.session.notes == "felt heavy"
        assert resumed.completed_set_count("Bench") == 1

        fill_bench(resumed)
        await container.drain_sessions()

        assert (await CycleRepository(store, USER_ID).get_current()).completed_workout_keys == ["A"]
        assert await WorkoutRepository(store, USER_ID).get_draft("A") is None

    @pytest.mark.asyncio
    async def test_previous_workout_shown_on_new_session(self, container):
        await container.workout_service(USER_ID).save_workout(
            completed_bench_session("A", weight=215, workout_date=date(2024, 3, 1))
        )

        tracker, _, started = await container.open_session(USER_ID, "A")

        assert started.resumed is False
        assert started.previous.date == date(2024, 3, 1)
        assert [r.weight for r in tracker.previous_sets("Bench")] == [215, 215, 215]
        assert isinstance(started.session, WorkoutSession)
