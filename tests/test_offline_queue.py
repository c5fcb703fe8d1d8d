"""Tests for the local offline queue."""
from datetime import date

import pytest

from liftcycle.core.exceptions import PersistenceError
from liftcycle.services.offline_queue import OfflineQueue

from tests.conftest import completed_bench_session


@pytest.fixture
def queue(tmp_path):
    return OfflineQueue(tmp_path / "offline")


class TestEnqueue:
    def test_empty_queue(self, queue):
        assert queue.pending() == []
        assert len(queue) == 0

    def test_enqueue_persists_entry(self, queue, tmp_path):
        entry = queue.enqueue("athlete", completed_bench_session("A"), error="store unreachable")

        assert entry.id == "athlete-2024-03-04-A"
        assert (tmp_path / "offline" / "athlete-2024-03-04-A.json").exists()
        assert queue.pending()[0].last_error == "store unreachable"

    def test_requeue_same_workout_overwrites(self, queue):
        queue.enqueue("athlete", completed_bench_session("A", weight=215))
        queue.enqueue("athlete", completed_bench_session("A", weight=225))

        entries = queue.pending()

        assert len(entries) == 1
        assert entries[0].workout.sets["Bench"][0].weight == 225

    def test_unsafe_characters_sanitized(self, queue):
        entry = queue.enqueue("a/b c", completed_bench_session("A"))

        assert "/" not in entry.id
        assert " " not in entry.id

    def test_pending_filters_by_user(self, queue):
        queue.enqueue("athlete", completed_bench_session("A"))
        queue.enqueue("coach", completed_bench_session("A"))

        assert [e.user_id for e in queue.pending("coach")] == ["coach"]
        assert len(queue) == 2


class TestReplay:
    """Replay removes saved entries and keeps failed ones."""

    @pytest.mark.asyncio
    async def test_replay_oldest_first(self, queue):
        queue.enqueue("athlete", completed_bench_session("A", workout_date=date(2024, 3, 1)))
        queue.enqueue("athlete", completed_bench_session("B", workout_date=date(2024, 3, 2)))
        saved = []

        async def save(entry):
            saved.append(entry.workout.template_key)

        report = await queue.replay(save)

        assert saved == ["A", "B"]
        assert len(report.replayed) == 2
        assert report.remaining == []
        assert len(queue) == 0

    @pytest.mark.asyncio
    async def test_failed_replay_keeps_entry(self, queue):
        queue.enqueue("athlete", completed_bench_session("A"))

        async def save(entry):
            raise PersistenceError("put", "still unreachable")

        report = await queue.replay(save)

        assert report.replayed == []
        assert report.remaining == ["athlete-2024-03-04-A"]
        entry = queue.pending()[0]
        assert entry.attempts == 1
        assert entry.last_error == "still unreachable"

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self, queue):
        queue.enqueue("athlete", completed_bench_session("A"))

        async def save(entry):
            raise RuntimeError("bug")

        with pytest.raises(RuntimeError):
            await queue.replay(save)

        assert len(queue) == 1
