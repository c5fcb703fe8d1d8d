"""Shared fixtures: in-memory item store, small template catalogs, fake LLM."""
from datetime import date

import pytest
import pytest_asyncio

from liftcycle.config.features import FeatureSet
from liftcycle.config.settings import Settings
from liftcycle.config.workout_templates import TemplateCatalog
from liftcycle.core.exceptions import PersistenceError
from liftcycle.db.database import create_engine, create_session_maker, init_db
from liftcycle.llm.base import LLMConfig, LLMProvider, LLMResponse, Message
from liftcycle.repositories import (
    AnalysisRepository,
    CycleRepository,
    ItemStore,
    ProfileRepository,
    SQLItemStore,
    WorkoutRepository,
)
from liftcycle.schemas.workout import ExerciseSpec, SetRecord, WorkoutSession, WorkoutTemplate


USER_ID = "athlete"


class FailingStore(ItemStore):
    """ItemStore double whose every call fails like an unreachable store."""

    def __init__(self):
        self.calls = 0

    async def _fail(self, operation):
        self.calls += 1
        raise PersistenceError(operation, f"Item store {operation} failed: connection refused")

    async def put(self, item):
        await self._fail("put")

    async def get(self, partition_key, sort_key):
        await self._fail("get")

    async def delete(self, partition_key, sort_key):
        await self._fail("delete")

    async def query_by_prefix(self, partition_key, sort_key_prefix, descending=False, limit=None):
        await self._fail("query")

    async def query_range(self, index_name, partition_key, sort_key_range=None, limit=None):
        await self._fail("query_range")


class FakeProvider(LLMProvider):
    """LLM double returning canned replies, or raising queued errors first."""

    def __init__(self, content: str = "{}", errors: list[Exception] | None = None):
        self.content = content
        self.errors = list(errors or [])
        self.requests: list[tuple[list[Message], LLMConfig]] = []

    async def chat(self, messages, config):
        self.requests.append((messages, config))
        if self.errors:
            raise self.errors.pop(0)
        return LLMResponse(content=self.content)

    async def health_check(self):
        return True


ANALYSIS_REPLY = """Here is my analysis of the cycle:
{
  "overall_assessment": {
    "fatigue_level": "high",
    "progress_rate": "slow",
    "summary": "RPE is climbing while loads are flat."
  },
  "exercise_recommendations": {
    "Bench": {
      "current_weight": 225,
      "suggested_weight": 215,
      "current_reps": "5",
      "suggested_reps": "5-6",
      "reasoning": "Back off to recover bar speed.",
      "confidence": 0.8
    }
  },
  "training_modifications": {
    "volume": "decrease",
    "frequency": "maintain",
    "intensity": "maintain",
    "reasoning": "Manage accumulated fatigue."
  },
  "recovery_recommendations": ["Sleep at least 8 hours"],
  "warnings": []
}
Let me know if you need anything else."""


def bench_template(key: str, mandatory: bool = True, sets: int = 3) -> WorkoutTemplate:
    return WorkoutTemplate(
        key=key,
        title=f"Workout {key}",
        mandatory=mandatory,
        exercises=(ExerciseSpec(name="Bench", target_sets=sets, target_reps_label="5"),),
    )


def completed_bench_session(
    key: str,
    weight: float = 225,
    reps: int = 5,
    rpe: int = 8,
    sets: int = 3,
    workout_date: date | None = None,
) -> WorkoutSession:
    return WorkoutSession(
        template_key=key,
        date=workout_date or date(2024, 3, 4),
        bodyweight=185,
        sets={"Bench": [SetRecord(weight=weight, reps=reps) for _ in range(sets)]},
        exercise_rpe={"Bench": rpe},
    )


@pytest.fixture
def abc_catalog():
    """Three mandatory templates plus one optional template."""
    return TemplateCatalog([
        bench_template("A"),
        bench_template("B"),
        bench_template("C"),
        bench_template("optional_mobility", mandatory=False),
    ])


@pytest.fixture
def features():
    return FeatureSet()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        offline_queue_dir=str(tmp_path / "offline"),
        analysis_backoff_seconds=0.0,
        session_autosave_debounce_seconds=0.05,
    )


@pytest_asyncio.fixture
async def store():
    engine = create_engine("sqlite+aiosqlite:///:memory:", echo=False)
    await init_db(engine)
    yield SQLItemStore(create_session_maker(engine), timeout=5.0)
    await engine.dispose()


@pytest.fixture
def failing_store():
    return FailingStore()


@pytest.fixture
def workouts(store):
    return WorkoutRepository(store, USER_ID)


@pytest.fixture
def cycles(store):
    return CycleRepository(store, USER_ID)


@pytest.fixture
def profiles(store):
    return ProfileRepository(store, USER_ID)


@pytest.fixture
def analyses(store):
    return AnalysisRepository(store, USER_ID)
