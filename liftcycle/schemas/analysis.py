"""Cycle analysis request and result schemas."""
from datetime import datetime, timezone
from functools import partial

from pydantic import BaseModel, Field, field_validator

from liftcycle.models.enums import Adjustment, FatigueLevel, ProgressRate
from liftcycle.schemas.workout import WorkoutSession


class ExercisePerformance(BaseModel):
    weights: list[float] = Field(default_factory=list)
    reps: list[int] = Field(default_factory=list)


class UserProfile(BaseModel):
    bodyweight: float | None = None
    experience_level: str = "Intermediate"
    include_in_analysis: dict[str, bool] = Field(default_factory=dict)


class CycleData(BaseModel):
    """Everything the analysis collaborator sees about one closed cycle."""
    cycle_number: int | None = None
    workouts: list[WorkoutSession] = Field(default_factory=list)
    per_exercise: dict[str, ExercisePerformance] = Field(default_factory=dict)
    per_exercise_rpe: dict[str, list[int]] = Field(default_factory=dict)
    user_profile: UserProfile = Field(default_factory=UserProfile)


class OverallAssessment(BaseModel):
    fatigue_level: FatigueLevel = FatigueLevel.MODERATE
    progress_rate: ProgressRate = ProgressRate.OPTIMAL
    summary: str = ""


class ExerciseRecommendation(BaseModel):
    current_weight: float | None = None
    suggested_weight: float | None = None
    current_reps: str | None = None
    suggested_reps: str | None = None
    reasoning: str = ""
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)

    @field_validator("current_weight", "suggested_weight", mode="before")
    @classmethod
    def _weight_or_none(cls, value):
        if value is None or isinstance(value, (int, float)):
            return value
        try:
            return float(str(value).split()[0])
        except (ValueError, IndexError):
            return None

    @field_validator("current_reps", "suggested_reps", mode="before")
    @classmethod
    def _reps_as_label(cls, value):
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value):
        if value is None:
            return 0.0
        return min(max(float(value), 0.0), 1.0)


class TrainingModifications(BaseModel):
    volume: Adjustment = Adjustment.MAINTAIN
    frequency: Adjustment = Adjustment.MAINTAIN
    intensity: Adjustment = Adjustment.MAINTAIN
    reasoning: str = ""


class AnalysisResult(BaseModel):
    """Stored once per cycle and never modified afterwards."""
    cycle_number: int | None = None
    generated_at: datetime = Field(default_factory=partial(datetime.now, timezone.utc))
    overall_assessment: OverallAssessment = Field(default_factory=OverallAssessment)
    exercise_recommendations: dict[str, ExerciseRecommendation] = Field(default_factory=dict)
    training_modifications: TrainingModifications = Field(default_factory=TrainingModifications)
    recovery_recommendations: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    degraded: bool = False
    error: str | None = None
    raw_response: str | None = None


class ExerciseSuggestion(BaseModel):
    """Projection of the latest analysis for a single exercise."""
    exercise: str
    suggested_weight: float | None = None
    suggested_reps: str | None = "Start light and work up"
    confidence: float = 0.0
    reasoning: str = "No previous data available"
    cycle_number: int | None = None


class AnalysisTriggerRequest(BaseModel):
    cycle_number: int | None = Field(default=None, ge=1)
