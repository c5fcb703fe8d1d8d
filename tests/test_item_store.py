"""Tests for the SQL-backed item store and the repositories built on it."""
import asyncio
from datetime import date

import pytest
from sqlalchemy.exc import OperationalError

from liftcycle.core.exceptions import PersistenceError
from liftcycle.repositories import AnalysisRepository, SQLItemStore, WorkoutRepository
from liftcycle.repositories import keys
from liftcycle.schemas.analysis import AnalysisResult, ExerciseRecommendation
from liftcycle.schemas.workout import WorkoutSession

from tests.conftest import USER_ID, completed_bench_session


class BrokenSessionMaker:
    """Session factory that fails like an unreachable database."""

    def __call__(self):
        raise OperationalError("SELECT 1", {}, Exception("database is unreachable"))


class HangingSession:
    async def __aenter__(self):
        await asyncio.sleep(1)

    async def __aexit__(self, *exc):
        return False


def item(sk, **extra):
    return {"PK": "USER#a", "SK": sk, "type": "TEST", **extra}


def bench_analysis(cycle_number, suggested_weight):
    return AnalysisResult(
        cycle_number=cycle_number,
        exercise_recommendations={
            "Bench": ExerciseRecommendation(suggested_weight=suggested_weight, suggested_reps="5"),
        },
    )


class TestItemStore:
    """Test the key-value gateway contract."""

    @pytest.mark.asyncio
    async def test_put_then_get(self, store):
        await store.put(item("PROFILE", bodyweight=185))

        fetched = await store.get("USER#a", "PROFILE")

        assert fetched["bodyweight"] == 185
        assert fetched["PK"] == "USER#a"
        assert fetched["type"] == "TEST"
        assert await store.get("USER#a", "MISSING") is None

    @pytest.mark.asyncio
    async def test_put_replaces_item(self, store):
        await store.put(item("PROFILE", bodyweight=185, notes="x"))
        await store.put(item("PROFILE", bodyweight=190))

        fetched = await store.get("USER#a", "PROFILE")

        assert fetched["bodyweight"] == 190
        assert "notes" not in fetched

    @pytest.mark.asyncio
    async def test_put_requires_keys_and_type(self, store):
        with pytest.raises(ValueError):
            await store.put({"SK": "PROFILE", "type": "TEST"})
        with pytest.raises(ValueError):
            await store.put({"PK": "USER#a", "SK": "PROFILE"})

    @pytest.mark.asyncio
    async def test_query_by_prefix(self, store):
        for sk in ("WORKOUT#2024-03-01#A", "WORKOUT#2024-03-03#B", "WORKOUT#2024-03-02#C", "PROFILE"):
            await store.put(item(sk))

        ascending = await store.query_by_prefix("USER#a", "WORKOUT#")
        descending = await store.query_by_prefix("USER#a", "WORKOUT#", descending=True, limit=2)

        assert [i["SK"] for i in ascending] == [
            "WORKOUT#2024-03-01#A",
            "WORKOUT#2024-03-02#C",
            "WORKOUT#2024-03-03#B",
        ]
        assert [i["SK"] for i in descending] == ["WORKOUT#2024-03-03#B", "WORKOUT#2024-03-02#C"]

    @pytest.mark.asyncio
    async def test_query_range_is_inclusive(self, store):
        for day in ("2024-03-01", "2024-03-02", "2024-03-03", "2024-03-04"):
            await store.put(item(f"WORKOUT#{day}#A", GSI1PK="WORKOUTS#a", GSI1SK=day))

        found = await store.query_range(keys.GSI_BY_DATE, "WORKOUTS#a", ("2024-03-02", "2024-03-03"))
        everything = await store.query_range(keys.GSI_BY_DATE, "WORKOUTS#a")

        assert [i["GSI1SK"] for i in found] == ["2024-03-02", "2024-03-03"]
        assert len(everything) == 4

    @pytest.mark.asyncio
    async def test_query_range_unknown_index(self, store):
        with pytest.raises(ValueError):
            await store.query_range("GSI9", "WORKOUTS#a")

    @pytest.mark.asyncio
    async def test_delete(self, store):
        await store.put(item("SESSION#A"))

        await store.delete("USER#a", "SESSION#A")
        await store.delete("USER#a", "SESSION#A")

        assert await store.get("USER#a", "SESSION#A") is None


class TestStoreFailures:
    """Driver errors and timeouts surface as PersistenceError."""

    @pytest.mark.asyncio
    async def test_driver_error(self):
        store = SQLItemStore(BrokenSessionMaker(), timeout=1.0)

        with pytest.raises(PersistenceError) as exc_info:
            await store.get("USER#a", "PROFILE")

        assert exc_info.value.code == "PERSIST_GET_001"

    @pytest.mark.asyncio
    async def test_timeout(self):
        store = SQLItemStore(lambda: HangingSession(), timeout=0.01)

        with pytest.raises(PersistenceError) as exc_info:
            await store.put(item("PROFILE"))

        assert "timed out" in exc_info.value.message


class TestWorkoutRepository:
    """Test workout persistence, range queries and the draft cache."""

    @pytest.mark.asyncio
    async def test_save_and_get(self, workouts):
        session = completed_bench_session("A")

        await workouts.save(session, cycle_number=1)

        assert await workouts.get(date(2024, 3, 4), "A") == session

    @pytest.mark.asyncio
    async def test_date_range_includes_end_date(self, workouts):
        for day, key in ((1, "A"), (3, "B"), (5, "C"), (5, "A")):
            await workouts.save(completed_bench_session(key, workout_date=date(2024, 3, day)), 1)

        found = await workouts.list_by_date_range(date(2024, 3, 3), date(2024, 3, 5))

        assert [(w.date.day, w.template_key) for w in found] == [(3, "B"), (5, "A"), (5, "C")]

    @pytest.mark.asyncio
    async def test_list_for_cycle(self, workouts):
        await workouts.save(completed_bench_session("A", workout_date=date(2024, 3, 1)), 1)
        await workouts.save(completed_bench_session("B", workout_date=date(2024, 3, 2)), 1)
        await workouts.save(completed_bench_session("A", workout_date=date(2024, 3, 8)), 2)

        cycle_one = await workouts.list_for_cycle(1)
        cycle_two = await workouts.list_for_cycle(2)

        assert [w.template_key for w in cycle_one] == ["A", "B"]
        assert [w.date for w in cycle_two] == [date(2024, 3, 8)]

    @pytest.mark.asyncio
    async def test_users_are_isolated(self, store, workouts):
        other = WorkoutRepository(store, "someone-else")
        await other.save(completed_bench_session("A"), 1)

        assert await workouts.list_for_cycle(1) == []
        assert await workouts.list_by_date_range(date(2024, 1, 1), date(2024, 12, 31)) == []
        assert await workouts.list_recent() == []

    @pytest.mark.asyncio
    async def test_latest_for_template(self, workouts):
        await workouts.save(completed_bench_session("A", weight=215, workout_date=date(2024, 3, 1)), 1)
        await workouts.save(completed_bench_session("A", weight=225, workout_date=date(2024, 3, 8)), 2)
        await workouts.save(completed_bench_session("B", weight=300, workout_date=date(2024, 3, 9)), 2)

        latest = await workouts.latest_for_template("A")

        assert latest.sets["Bench"][0].weight == 225
        assert await workouts.latest_for_template("C") is None

    @pytest.mark.asyncio
    async def test_list_recent_excludes_drafts(self, workouts):
        await workouts.save(completed_bench_session("A"), 1)
        await workouts.save_draft(WorkoutSession(template_key="B"))

        recent = await workouts.list_recent()

        assert [w.template_key for w in recent] == ["A"]

    @pytest.mark.asyncio
    async def test_draft_cache(self, workouts):
        draft = WorkoutSession(template_key="A", notes="halfway")

        await workouts.save_draft(draft)
        assert (await workouts.get_draft("A")).notes == "halfway"

        await workouts.delete_draft("A")
        assert await workouts.get_draft("A") is None


class TestAnalysisRepository:
    @pytest.mark.asyncio
    async def test_requires_cycle_number(self, analyses):
        with pytest.raises(ValueError):
            await analyses.save(AnalysisResult())

    @pytest.mark.asyncio
    async def test_analyses_scoped_per_user(self, store, analyses):
        await AnalysisRepository(store, "someone-else").save(AnalysisResult(cycle_number=1))

        assert await analyses.get(1) is None
        assert analyses.user_id == USER_ID

    @pytest.mark.asyncio
    async def test_older_analysis_keeps_newer_suggestions(self, analyses):
        await analyses.save(bench_analysis(2, 235))
        await analyses.save(bench_analysis(1, 215))

        suggestion = await analyses.get_suggestion("Bench")

        assert suggestion.suggested_weight == 235
        assert suggestion.cycle_number == 2
        assert (await analyses.get(1)).exercise_recommendations["Bench"].suggested_weight == 215

    @pytest.mark.asyncio
    async def test_rerun_of_same_cycle_replaces_suggestions(self, analyses):
        await analyses.save(bench_analysis(2, 235))
        await analyses.save(bench_analysis(2, 240))

        assert (await analyses.get_suggestion("Bench")).suggested_weight == 240
