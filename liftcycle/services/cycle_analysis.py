"""
Cycle analysis.

Builds the analysis request for a closed cycle, sends it to the LLM and turns
the reply into a stored AnalysisResult plus the per-exercise "latest
suggestions" projection read at the start of the next session.

Analysis never blocks cycle progression: by the time it runs the next cycle
is already open. A reply that is not parseable JSON yields a degraded result
instead of an error; transport failures and timeouts are retried by
AnalysisDispatcher and stored as a degraded result once retries run out.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
import time
from typing import Any, Awaitable, Callable, Iterable

from liftcycle.core.exceptions import AnalysisError, PersistenceError
from liftcycle.core.metrics import track_analysis
from liftcycle.llm.base import LLMConfig, LLMProvider, Message
from liftcycle.llm.schemas import CYCLE_ANALYSIS_SCHEMA
from liftcycle.models.enums import RPETrend
from liftcycle.repositories.analysis_repository import AnalysisRepository
from liftcycle.repositories.cycle_repository import CycleRepository, ProfileRepository
from liftcycle.repositories.workout_repository import WorkoutRepository
from liftcycle.schemas.analysis import (
    AnalysisResult,
    CycleData,
    ExercisePerformance,
    ExerciseSuggestion,
    OverallAssessment,
    UserProfile,
)
from liftcycle.schemas.workout import WorkoutSession


logger = logging.getLogger(__name__)

PARSE_FAILED_SUMMARY = "Analysis completed but response parse failed"
TREND_THRESHOLD = 0.5

_JSON_BLOCK = re.compile(r"\{.*\}", re.DOTALL)

SYSTEM_PROMPT = """You are an expert strength and conditioning coach with deep knowledge of progressive overload, RPE-based training, and exercise physiology.

Your task is to analyze workout data and provide specific, actionable recommendations for the next training cycle.

Key principles to follow:
1. Use RPE (Rate of Perceived Exertion) as the primary indicator of training stress
2. Apply progressive overload principles while managing fatigue
3. Consider the relationship between volume, intensity, and recovery
4. Account for individual exercise progression rates
5. Reference the RPE scale where:
   - RPE 6-7: Light to moderate, 3-4 reps in reserve
   - RPE 8: Challenging but 2 reps in reserve
   - RPE 9: Hard, 1 rep in reserve
   - RPE 10: Maximum effort, no reps in reserve

Provide recommendations in a structured JSON format."""

RESPONSE_FORMAT = """{
  "overall_assessment": {
    "fatigue_level": "low|moderate|high",
    "progress_rate": "slow|optimal|fast",
    "summary": "Brief text summary"
  },
  "exercise_recommendations": {
    "exercise_name": {
      "current_weight": number,
      "suggested_weight": number,
      "current_reps": "string",
      "suggested_reps": "string",
      "reasoning": "explanation",
      "confidence": 0.0-1.0
    }
  },
  "training_modifications": {
    "volume": "increase|maintain|decrease",
    "frequency": "increase|maintain|decrease",
    "intensity": "increase|maintain|decrease",
    "reasoning": "explanation"
  },
  "recovery_recommendations": ["recommendation1", "recommendation2"],
  "warnings": ["any concerns or warnings"]
}"""


# ============================================================================
# Pure helpers
# ============================================================================

def _mean(values: list[float]) -> float:
    return sum(values) / len(values)


def rpe_trend(values: list[int] | list[float]) -> RPETrend:
    """
    Compare the mean of the first half of a sequence with the second half.

    The second half takes the extra element of an odd-length sequence. A
    difference above 0.5 in either direction is a trend; sequences shorter
    than two are always stable.
    """
    if len(values) < 2:
        return RPETrend.STABLE

    middle = len(values) // 2
    first, second = _mean(values[:middle]), _mean(values[middle:])
    if second - first > TREND_THRESHOLD:
        return RPETrend.INCREASING
    if first - second > TREND_THRESHOLD:
        return RPETrend.DECREASING
    return RPETrend.STABLE


def aggregate(
    workouts: Iterable[WorkoutSession],
) -> tuple[dict[str, ExercisePerformance], dict[str, list[int]]]:
    """Fold workouts, in order, into per-exercise weight/rep and RPE sequences.

    Weights and reps are appended independently; unentered (empty or zero)
    values are skipped.
    """
    per_exercise: dict[str, ExercisePerformance] = {}
    per_exercise_rpe: dict[str, list[int]] = {}

    for workout in workouts:
        for name, records in workout.sets.items():
            performance = per_exercise.setdefault(name, ExercisePerformance())
            for record in records:
                if record.weight:
                    performance.weights.append(record.weight)
                if record.reps:
                    performance.reps.append(record.reps)
        for name, rpe in workout.exercise_rpe.items():
            per_exercise_rpe.setdefault(name, []).append(rpe)

    return per_exercise, per_exercise_rpe


def build_cycle_data(
    workouts: list[WorkoutSession],
    user_profile: UserProfile,
    cycle_number: int | None = None,
) -> CycleData:
    per_exercise, per_exercise_rpe = aggregate(workouts)
    return CycleData(
        cycle_number=cycle_number,
        workouts=workouts,
        per_exercise=per_exercise,
        per_exercise_rpe=per_exercise_rpe,
        user_profile=user_profile,
    )


def _format_number(value: float) -> str:
    return f"{value:g}"


def _format_workouts(workouts: list[WorkoutSession]) -> str:
    if not workouts:
        return "- No workouts recorded"
    lines = []
    for w in workouts:
        status = "Completed" if w.completed_at else "Partial"
        lines.append(f"- {w.template_key} on {w.date.isoformat()}: {status}, Notes: {w.notes or 'None'}")
    return "\n".join(lines)


def _format_exercises(per_exercise: dict[str, ExercisePerformance]) -> str:
    blocks = []
    for name, data in per_exercise.items():
        if not data.weights and not data.reps:
            continue
        avg_weight = f"{_mean(data.weights):.1f} lbs" if data.weights else "n/a"
        avg_reps = f"{_mean(data.reps):.1f}" if data.reps else "n/a"
        blocks.append(
            f"{name}:\n"
            f"  - Average weight: {avg_weight}\n"
            f"  - Average reps: {avg_reps}\n"
            f"  - Weight progression: {' → '.join(_format_number(w) for w in data.weights)}\n"
            f"  - Rep progression: {' → '.join(str(r) for r in data.reps)}"
        )
    return "\n\n".join(blocks) or "No weighted sets recorded"


def _format_rpe(per_exercise_rpe: dict[str, list[int]]) -> str:
    lines = [
        f"{name}: Average RPE {_mean(values):.1f}, Trend: {rpe_trend(values).value}, "
        f"Values: [{', '.join(str(v) for v in values)}]"
        for name, values in per_exercise_rpe.items()
        if values
    ]
    return "\n".join(lines) or "No RPE recorded"


def build_prompt(cycle_data: CycleData) -> str:
    profile = cycle_data.user_profile
    bodyweight = _format_number(profile.bodyweight) if profile.bodyweight else "unknown"
    return f"""Analyze this completed training cycle and provide recommendations for the next cycle:

USER PROFILE:
- Current bodyweight: {bodyweight} lbs
- Training experience: {profile.experience_level or 'Intermediate'}
- Cycle duration: {len(cycle_data.workouts)} workouts

WORKOUT SUMMARY:
{_format_workouts(cycle_data.workouts)}

EXERCISE PERFORMANCE DATA:
{_format_exercises(cycle_data.per_exercise)}

RPE PATTERNS:
{_format_rpe(cycle_data.per_exercise_rpe)}

Please provide:
1. Overall assessment of the cycle (fatigue level, progress rate)
2. Specific weight/rep recommendations for each exercise
3. Any form or technique concerns based on RPE patterns
4. Suggested modifications to training volume or frequency
5. Recovery recommendations

Format your response as JSON with the following structure:
{RESPONSE_FORMAT}"""


_CAMEL_KEYS = {
    "overallAssessment": "overall_assessment",
    "fatigueLevel": "fatigue_level",
    "progressRate": "progress_rate",
    "exerciseRecommendations": "exercise_recommendations",
    "perExerciseRecommendation": "exercise_recommendations",
    "currentWeight": "current_weight",
    "suggestedWeight": "suggested_weight",
    "currentReps": "current_reps",
    "suggestedReps": "suggested_reps",
    "suggestedRepsLabel": "suggested_reps",
    "trainingModifications": "training_modifications",
    "recoveryRecommendations": "recovery_recommendations",
}

# Keys whose children are exercise names and must not be renamed
_OPAQUE_KEYS = {"exercise_recommendations"}


def _normalize_keys(value: Any) -> Any:
    if isinstance(value, dict):
        normalized = {}
        for key, child in value.items():
            key = _CAMEL_KEYS.get(key, key)
            if key in _OPAQUE_KEYS and isinstance(child, dict):
                normalized[key] = {name: _normalize_keys(rec) for name, rec in child.items()}
            else:
                normalized[key] = _normalize_keys(child)
        return normalized
    if isinstance(value, list):
        return [_normalize_keys(item) for item in value]
    return value


def extract_json(text: str) -> dict:
    """First {...} block in the text, else the whole text, as a JSON object."""
    match = _JSON_BLOCK.search(text)
    payload = json.loads(match.group(0) if match else text)
    if not isinstance(payload, dict):
        raise ValueError("analysis response is not a JSON object")
    return payload


def degraded_result(
    cycle_number: int | None,
    error: str,
    raw_response: str | None = None,
    summary: str = PARSE_FAILED_SUMMARY,
) -> AnalysisResult:
    return AnalysisResult(
        cycle_number=cycle_number,
        overall_assessment=OverallAssessment(summary=summary),
        degraded=True,
        error=error,
        raw_response=raw_response,
    )


def parse_response(text: str, cycle_number: int | None = None) -> AnalysisResult:
    """Turn LLM output into an AnalysisResult; never raises on bad content."""
    try:
        payload = _normalize_keys(extract_json(text))
        return AnalysisResult.model_validate({
            **{k: v for k, v in payload.items() if k in AnalysisResult.model_fields},
            "cycle_number": cycle_number,
            "raw_response": text,
        })
    except ValueError as e:
        # json.JSONDecodeError and pydantic's ValidationError are both ValueErrors
        logger.warning(f"Failed to parse analysis response for cycle {cycle_number}: {e}")
        return degraded_result(cycle_number, "Failed to parse structured response", raw_response=text)


def smart_defaults(suggestions: dict[str, ExerciseSuggestion]) -> dict[str, dict[str, Any]]:
    """Per-exercise input defaults for the next session, flagged as AI-suggested."""
    return {
        name: {
            "weight": suggestion.suggested_weight,
            "reps": suggestion.suggested_reps,
            "ai_suggested": True,
            "confidence": suggestion.confidence,
            "reasoning": suggestion.reasoning,
        }
        for name, suggestion in suggestions.items()
    }


# ============================================================================
# Service
# ============================================================================

class CycleAnalysisService:
    """Loads a cycle's persisted data, requests the analysis and stores it."""

    def __init__(
        self,
        provider: LLMProvider,
        workouts: WorkoutRepository,
        cycles: CycleRepository,
        profiles: ProfileRepository,
        analyses: AnalysisRepository,
        *,
        timeout: float = 60.0,
        max_tokens: int = 4000,
        temperature: float = 0.3,
        default_bodyweight: float = 180.0,
        default_experience_level: str = "Intermediate",
    ):
        self._provider = provider
        self._workouts = workouts
        self._cycles = cycles
        self._profiles = profiles
        self._analyses = analyses
        self._timeout = timeout
        self._config = LLMConfig(temperature=temperature, max_tokens=max_tokens)
        self._default_bodyweight = default_bodyweight
        self._default_experience_level = default_experience_level

    async def resolve_cycle_number(self, requested: int | None = None) -> int:
        """Requested cycle, else the most recently closed one, else the open one."""
        if requested is not None:
            return requested
        archives = await self._cycles.list_archives(descending=True)
        if archives:
            return archives[0].cycle_number
        current = await self._cycles.get_current()
        return current.cycle_number if current else 1

    async def load_cycle_data(self, cycle_number: int) -> CycleData:
        workouts = await self._workouts.list_for_cycle(cycle_number)
        profile = await self._profiles.get() or UserProfile()

        # Latest recorded bodyweight wins over the stored profile value
        bodyweight = next(
            (w.bodyweight for w in reversed(workouts) if w.bodyweight),
            profile.bodyweight or self._default_bodyweight,
        )
        user_profile = profile.model_copy(update={
            "bodyweight": bodyweight,
            "experience_level": profile.experience_level or self._default_experience_level,
        })
        return build_cycle_data(workouts, user_profile, cycle_number)

    async def analyze_cycle(self, cycle_data: CycleData) -> AnalysisResult:
        """
        Ask the LLM to analyze one cycle.

        Raises AnalysisError when the call itself fails or times out; an
        unparseable reply is returned as a degraded result.
        """
        messages = [
            Message(role="system", content=SYSTEM_PROMPT),
            Message(role="user", content=build_prompt(cycle_data)),
        ]
        config = LLMConfig(
            temperature=self._config.temperature,
            max_tokens=self._config.max_tokens,
            json_schema=CYCLE_ANALYSIS_SCHEMA,
        )

        start = time.perf_counter()
        try:
            response = await asyncio.wait_for(
                self._provider.chat(messages, config), timeout=self._timeout
            )
        except asyncio.TimeoutError as e:
            track_analysis("timeout", time.perf_counter() - start)
            raise AnalysisError(
                f"Analysis for cycle {cycle_data.cycle_number} timed out after {self._timeout}s"
            ) from e
        except AnalysisError:
            track_analysis("error", time.perf_counter() - start)
            raise
        except Exception as e:
            track_analysis("error", time.perf_counter() - start)
            raise AnalysisError(
                f"Analysis call for cycle {cycle_data.cycle_number} failed: {e}"
            ) from e

        result = parse_response(response.content, cycle_data.cycle_number)
        track_analysis("degraded" if result.degraded else "ok", time.perf_counter() - start)
        return result

    async def run(self, cycle_number: int | None = None) -> AnalysisResult:
        """Load, analyze and store one cycle."""
        number = await self.resolve_cycle_number(cycle_number)
        cycle_data = await self.load_cycle_data(number)
        result = await self.analyze_cycle(cycle_data)
        await self._analyses.save(result)
        logger.info(
            f"Stored analysis for cycle {number} "
            f"({len(result.exercise_recommendations)} exercise recommendations)"
        )
        return result

    async def store_failure(self, cycle_number: int, error: str) -> AnalysisResult:
        result = degraded_result(cycle_number, error, summary="Analysis unavailable")
        await self._analyses.save(result)
        return result


# ============================================================================
# Dispatcher
# ============================================================================

class AnalysisDispatcher:
    """
    Runs cycle analyses in the background with retry and exponential backoff.

    schedule() returns immediately. A run failing with AnalysisError or
    PersistenceError is retried up to max_attempts times, waiting
    backoff_seconds before the second attempt and doubling after that. Once
    attempts run out a degraded result is stored so the cycle still has an
    analysis record.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        backoff_seconds: float = 2.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self._max_attempts = max(1, max_attempts)
        self._backoff = backoff_seconds
        self._sleep = sleep
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def schedule(self, service: CycleAnalysisService, cycle_number: int) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(
            self.run_with_retry(service, cycle_number),
            name=f"cycle-analysis-{cycle_number}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info(f"Scheduled analysis for cycle {cycle_number}")
        return task

    async def run_with_retry(
        self, service: CycleAnalysisService, cycle_number: int
    ) -> AnalysisResult | None:
        delay = self._backoff
        last_error: str | None = None

        for attempt in range(1, self._max_attempts + 1):
            try:
                return await service.run(cycle_number)
            except (AnalysisError, PersistenceError) as e:
                last_error = e.message
                logger.warning(
                    f"Analysis attempt {attempt}/{self._max_attempts} for cycle "
                    f"{cycle_number} failed: {e.message}"
                )
            if attempt < self._max_attempts:
                await self._sleep(delay)
                delay *= 2

        logger.error(f"Analysis for cycle {cycle_number} gave up after {self._max_attempts} attempts")
        track_analysis("exhausted")
        try:
            return await service.store_failure(cycle_number, last_error or "analysis failed")
        except Exception:
            logger.exception(f"Could not store failed analysis for cycle {cycle_number}")
            return None

    async def drain(self) -> None:
        """Wait for in-flight analyses; called at shutdown."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
