"""
Tests for CycleTracker.

Covers the initial selection, idempotent completion, exactly-once closure,
selection changes under both reset modes, persisted profile overrides and
the behaviour when the item store is unreachable.
"""
import pytest

from liftcycle.config.features import FeatureSet
from liftcycle.core.exceptions import PersistenceError, ValidationError
from liftcycle.repositories import CycleRepository, ProfileRepository
from liftcycle.services.cycle_tracker import CycleTracker

from tests.conftest import USER_ID


@pytest.fixture
def tracker(abc_catalog, cycles, profiles):
    return CycleTracker(abc_catalog, cycles, profiles)


@pytest.fixture
def closed_events(tracker):
    events = []
    tracker.add_listener(events.append)
    return events


class TestInitialState:
    @pytest.mark.asyncio
    async def test_first_cycle_selects_mandatory_templates(self, tracker, cycles):
        state = await tracker.get_state()

        assert state.cycle_number == 1
        assert state.selected_workout_keys == ["A", "B", "C"]
        assert state.completed_workout_keys == []
        assert await cycles.get_current() == state

    @pytest.mark.asyncio
    async def test_first_cycle_honours_stored_overrides(self, abc_catalog, cycles, profiles):
        from liftcycle.schemas.analysis import UserProfile
        await profiles.save(UserProfile(include_in_analysis={"C": False}))
        tracker = CycleTracker(abc_catalog, cycles, profiles)

        state = await tracker.get_state()

        assert state.selected_workout_keys == ["A", "B"]


class TestRecordCompletion:
    """Test counting completed workouts toward the open cycle."""

    @pytest.mark.asyncio
    async def test_counts_selected_workout(self, tracker):
        progress = await tracker.record_completion("B")

        assert progress.counted is True
        assert progress.state.completed_workout_keys == ["B"]
        assert progress.closed is None

    @pytest.mark.asyncio
    async def test_duplicate_completion_is_noop(self, tracker):
        await tracker.record_completion("A")
        before = await tracker.get_state()

        progress = await tracker.record_completion("A")

        assert progress.counted is False
        assert progress.state == before

    @pytest.mark.asyncio
    async def test_unselected_workout_ignored(self, tracker):
        progress = await tracker.record_completion("optional_mobility")

        assert progress.counted is False
        assert progress.state.completed_workout_keys == []

    @pytest.mark.asyncio
    async def test_completed_keys_kept_in_catalog_order(self, tracker):
        await tracker.record_completion("C")
        progress = await tracker.record_completion("A")

        assert progress.state.completed_workout_keys == ["A", "C"]


class TestClosure:
    """Completing every selected workout closes the cycle exactly once."""

    @pytest.mark.asyncio
    async def test_abc_closes_once(self, tracker, closed_events, cycles):
        await tracker.record_completion("A")
        await tracker.record_completion("B")
        progress = await tracker.record_completion("C")

        assert len(closed_events) == 1
        event = closed_events[0]
        assert event.cycle_number == 1
        assert event.completed_workout_keys == ["A", "B", "C"]
        assert event.selected_count == 3
        assert progress.closed == event

        state = await tracker.get_state()
        assert state.cycle_number == 2
        assert state.completed_workout_keys == []
        assert state.selected_workout_keys == ["A", "B", "C"]

        archives = await cycles.list_archives()
        assert [a.cycle_number for a in archives] == [1]
        assert archives[0].workout_keys == ["A", "B", "C"]

    @pytest.mark.asyncio
    async def test_completion_after_close_opens_next_cycle_progress(self, tracker, closed_events):
        """The tracker sees template keys only; the workout service decides what is a new workout."""
        for key in ("A", "B", "C"):
            await tracker.record_completion(key)

        progress = await tracker.record_completion("C")

        assert len(closed_events) == 1
        assert progress.state.cycle_number == 2
        assert progress.state.completed_workout_keys == ["C"]

    @pytest.mark.asyncio
    async def test_async_listener_awaited(self, tracker):
        seen = []

        async def listener(event):
            seen.append(event.cycle_number)

        tracker.add_listener(listener)
        for key in ("A", "B", "C"):
            await tracker.record_completion(key)

        assert seen == [1]

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_undo_close(self, tracker):
        def boom(event):
            raise RuntimeError("listener failed")

        tracker.add_listener(boom)
        for key in ("A", "B", "C"):
            progress = await tracker.record_completion(key)

        assert progress.closed is not None
        assert (await tracker.get_state()).cycle_number == 2


class TestSelectionChange:
    """Changing the selection discards or intersects progress."""

    @pytest.mark.asyncio
    async def test_change_resets_completed(self, tracker):
        await tracker.record_completion("A")

        progress = await tracker.apply_selection(["A", "B"])

        assert progress.was_reset is True
        assert progress.state.selected_workout_keys == ["A", "B"]
        assert progress.state.completed_workout_keys == []

    @pytest.mark.asyncio
    async def test_same_selection_is_not_a_change(self, tracker):
        await tracker.record_completion("A")

        progress = await tracker.apply_selection(["C", "B", "A"])

        assert progress.was_reset is False
        assert progress.state.completed_workout_keys == ["A"]

    @pytest.mark.asyncio
    async def test_intersect_when_reset_disabled(self, abc_catalog, cycles, profiles):
        tracker = CycleTracker(
            abc_catalog, cycles, profiles,
            features=FeatureSet(reset_cycle_on_selection_change=False),
        )
        await tracker.record_completion("A")
        await tracker.record_completion("C")

        progress = await tracker.apply_selection(["A", "B"])

        assert progress.state.completed_workout_keys == ["A"]
        assert progress.closed is None

    @pytest.mark.asyncio
    async def test_intersection_can_close_cycle(self, abc_catalog, cycles, profiles):
        tracker = CycleTracker(
            abc_catalog, cycles, profiles,
            features=FeatureSet(reset_cycle_on_selection_change=False),
        )
        events = []
        tracker.add_listener(events.append)
        await tracker.record_completion("A")
        await tracker.record_completion("B")

        progress = await tracker.apply_selection(["A", "B"])

        assert progress.closed is not None
        assert events[0].completed_workout_keys == ["A", "B"]
        assert progress.state.cycle_number == 2

    @pytest.mark.asyncio
    async def test_unknown_key_rejected(self, tracker):
        with pytest.raises(ValidationError):
            await tracker.apply_selection(["A", "Z"])


class TestConfigure:
    """Profile overrides drive the selection."""

    @pytest.mark.asyncio
    async def test_include_optional_template(self, tracker, profiles):
        progress = await tracker.configure({"optional_mobility": True})

        assert progress.state.selected_workout_keys == ["A", "B", "C", "optional_mobility"]
        profile = await profiles.get()
        assert profile.include_in_analysis == {"optional_mobility": True}

    @pytest.mark.asyncio
    async def test_overrides_accumulate(self, tracker, profiles):
        await tracker.configure({"optional_mobility": True})
        progress = await tracker.configure({"B": False})

        assert progress.state.selected_workout_keys == ["A", "C", "optional_mobility"]
        assert (await profiles.get()).include_in_analysis == {"optional_mobility": True, "B": False}

    @pytest.mark.asyncio
    async def test_unknown_key_rejected_before_write(self, tracker, profiles):
        with pytest.raises(ValidationError) as exc_info:
            await tracker.configure({"Z": True})

        assert exc_info.value.code == "VAL_INCLUDE_IN_ANALYSIS_001"
        assert await profiles.get() is None


class TestStoreFailures:
    """An unreachable store surfaces PersistenceError and nothing is counted."""

    @pytest.mark.asyncio
    async def test_failure_raises_and_retry_counts_once(self, abc_catalog, failing_store, store):
        broken = CycleTracker(
            abc_catalog,
            CycleRepository(failing_store, USER_ID),
            ProfileRepository(failing_store, USER_ID),
        )
        with pytest.raises(PersistenceError):
            await broken.record_completion("A")
        assert failing_store.calls >= 1

        working = CycleTracker(
            abc_catalog,
            CycleRepository(store, USER_ID),
            ProfileRepository(store, USER_ID),
        )
        await working.record_completion("A")
        progress = await working.record_completion("A")

        assert progress.state.completed_workout_keys == ["A"]
