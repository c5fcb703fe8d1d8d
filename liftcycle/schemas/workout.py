"""Workout templates, sets and sessions."""
from datetime import date as date_type, datetime

from pydantic import BaseModel, Field, field_validator

from liftcycle.schemas.cycle import CycleClosed, CycleState


class ExerciseSpec(BaseModel):
    """One exercise slot inside a workout template."""
    name: str = Field(..., min_length=1)
    target_sets: int = Field(..., ge=0)
    target_reps_label: str = ""
    rest_seconds: int | None = Field(default=None, ge=0)

    model_config = {"frozen": True}


class WorkoutTemplate(BaseModel):
    """Static workout definition; never mutated after the catalog is built."""
    key: str = Field(..., min_length=1)
    title: str
    mandatory: bool = True
    exercises: tuple[ExerciseSpec, ...] = ()

    model_config = {"frozen": True}

    def exercise(self, name: str) -> ExerciseSpec | None:
        for spec in self.exercises:
            if spec.name == name:
                return spec
        return None

    @property
    def total_target_sets(self) -> int:
        return sum(spec.target_sets for spec in self.exercises)


class SetRecord(BaseModel):
    """A single performed set. Absent or zero values count as not entered."""
    weight: float | None = Field(default=None, ge=0)
    reps: int | None = Field(default=None, ge=0)
    duration_seconds: int | None = Field(default=None, ge=0)
    comment: str | None = None


class WorkoutSession(BaseModel):
    """One in-progress or finalized instance of a template."""
    template_key: str = Field(..., min_length=1)
    date: date_type = Field(default_factory=date_type.today)
    bodyweight: float | None = Field(default=None, gt=0)
    sets: dict[str, list[SetRecord]] = Field(default_factory=dict)
    exercise_rpe: dict[str, int] = Field(default_factory=dict)
    skipped_exercises: list[str] = Field(default_factory=list)
    notes: str | None = None
    is_optional: bool = False
    completed_at: datetime | None = None

    @field_validator("exercise_rpe")
    @classmethod
    def _rpe_in_range(cls, value: dict[str, int]) -> dict[str, int]:
        for name, rpe in value.items():
            if not 1 <= rpe <= 10:
                raise ValueError(f"RPE for {name} must be between 1 and 10, got {rpe}")
        return value

    @field_validator("skipped_exercises")
    @classmethod
    def _dedupe_skipped(cls, value: list[str]) -> list[str]:
        return list(dict.fromkeys(value))


class SessionSummary(BaseModel):
    completed_sets: int
    total_sets: int
    total_volume: float
    average_rpe: float | None = None
    is_complete: bool


class SaveWorkoutResponse(BaseModel):
    workout: WorkoutSession
    completed: bool
    offline: bool = False
    cycle: CycleState | None = None
    cycle_closed: CycleClosed | None = None
    analysis_scheduled: bool = False
    message: str | None = None


class StartedSession(BaseModel):
    """A session opened for a template: resumed from its draft or freshly allocated."""
    session: WorkoutSession
    previous: WorkoutSession | None = None
    resumed: bool = False
    summary: SessionSummary
