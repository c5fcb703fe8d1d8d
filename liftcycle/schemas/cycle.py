"""Training cycle state, archives and closure events."""
from datetime import datetime, timezone
from functools import partial

from pydantic import BaseModel, Field, model_validator


class CycleState(BaseModel):
    """
    The single open cycle.

    completed_workout_keys is always a subset of selected_workout_keys; both
    are kept in catalog order so two states compare equal by value.
    """
    cycle_number: int = Field(default=1, ge=1)
    selected_workout_keys: list[str] = Field(default_factory=list)
    completed_workout_keys: list[str] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=partial(datetime.now, timezone.utc))
    version: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _completed_subset_of_selected(self) -> "CycleState":
        stray = set(self.completed_workout_keys) - set(self.selected_workout_keys)
        if stray:
            raise ValueError(f"completed keys not in selection: {sorted(stray)}")
        return self

    @property
    def remaining_workout_keys(self) -> list[str]:
        done = set(self.completed_workout_keys)
        return [key for key in self.selected_workout_keys if key not in done]

    @property
    def is_closable(self) -> bool:
        return bool(self.selected_workout_keys) and (
            set(self.completed_workout_keys) == set(self.selected_workout_keys)
        )


class CycleArchive(BaseModel):
    cycle_number: int
    started_at: datetime
    ended_at: datetime
    workout_keys: list[str]
    selected_count: int


class CycleClosed(BaseModel):
    """Emitted once per closed cycle; the only trigger for analysis."""
    cycle_number: int
    completed_workout_keys: list[str]
    selected_count: int
    closed_at: datetime = Field(default_factory=partial(datetime.now, timezone.utc))


class CycleProgress(BaseModel):
    """Result of feeding one event into the cycle tracker."""
    state: CycleState
    counted: bool = False
    was_reset: bool = False
    closed: CycleClosed | None = None


class CycleConfigurationRequest(BaseModel):
    include_in_analysis: dict[str, bool] = Field(default_factory=dict)


class CycleStatus(BaseModel):
    state: CycleState
    remaining_workout_keys: list[str]
    completed_count: int
    selected_count: int
    progress_percent: float

    @classmethod
    def from_state(cls, state: CycleState) -> "CycleStatus":
        selected = len(state.selected_workout_keys)
        completed = len(state.completed_workout_keys)
        return cls(
            state=state,
            remaining_workout_keys=state.remaining_workout_keys,
            completed_count=completed,
            selected_count=selected,
            progress_percent=round(100.0 * completed / selected, 1) if selected else 0.0,
        )
