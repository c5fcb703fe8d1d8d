"""
Workout template catalog.

Templates are reference data: the catalog is built once at startup and passed
to the services that need it. Mandatory templates count toward a cycle by
default; optional templates only count when explicitly included.
"""

from __future__ import annotations

from typing import Iterable, Iterator

from liftcycle.schemas.workout import ExerciseSpec, WorkoutTemplate


def _ex(name: str, sets: int, reps: str, rest: int) -> ExerciseSpec:
    return ExerciseSpec(name=name, target_sets=sets, target_reps_label=reps, rest_seconds=rest)


# ============================================================================
# Default rotation
# ============================================================================

DEFAULT_TEMPLATES: tuple[WorkoutTemplate, ...] = (
    WorkoutTemplate(
        key="A_push_power",
        title="Workout A: Push Day (Strength & Power)",
        mandatory=True,
        exercises=(
            _ex("Barbell Bench Press", 4, "5", 120),
            _ex("Standing Overhead Press", 4, "5", 90),
            _ex("Incline Dumbbell Press", 3, "8-12", 90),
            _ex("Dumbbell Lateral Raises", 3, "15-20", 60),
            _ex("Ring Dips", 3, "To Failure", 90),
            _ex("TRX Plank Saw", 3, "30-45 sec", 60),
            _ex("Kettlebell Farmer's March", 3, "30-45 sec", 60),
        ),
    ),
    WorkoutTemplate(
        key="A_pull_width",
        title="Workout A: Pull Day (Width & Thickness)",
        mandatory=True,
        exercises=(
            _ex("Pull-Ups", 4, "To Failure", 120),
            _ex("Bent-Over Barbell Row", 4, "5-8", 90),
            _ex("Single-Arm Dumbbell Row", 3, "8-12 per arm", 60),
            _ex("Banded Face Pulls", 3, "15-20", 60),
            _ex("Dumbbell Hammer Curls", 3, "8-12", 60),
            _ex("TRX Pike", 3, "10-15", 60),
            _ex("Kettlebell Goblet Squat", 3, "10-12", 90),
        ),
    ),
    WorkoutTemplate(
        key="B_push_hyp",
        title="Workout B: Push Day (Hypertrophy & Definition)",
        mandatory=True,
        exercises=(
            _ex("Seated Dumbbell Press", 4, "8-12", 90),
            _ex("TRX Push-Ups", 3, "To Failure", 60),
            _ex("Dumbbell Flyes", 3, "12-15", 60),
            _ex("Bent-Over Rear Delt Flyes", 3, "15-20", 60),
            _ex("TRX Tricep Extensions", 3, "12-15", 60),
            _ex("TRX Oblique Crunches", 3, "10-12 per side", 60),
            _ex("Kettlebell Swings", 3, "15-20", 90),
        ),
    ),
    WorkoutTemplate(
        key="B_pull_strength",
        title="Workout B: Pull Day (Strength & Function)",
        mandatory=True,
        exercises=(
            _ex("Barbell Deadlift", 4, "5", 180),
            _ex("T-Bar Row", 4, "8-10", 90),
            _ex("Neutral Grip Pull-ups", 3, "To Failure", 90),
            _ex("Dumbbell Shrugs", 3, "12-15", 60),
            _ex("Kettlebell Bicep Curls", 3, "10-15", 60),
            _ex("TRX Hamstring Runners", 3, "10-15", 60),
            _ex("Kettlebell Suitcase Carry", 3, "30 sec per side", 60),
        ),
    ),
    WorkoutTemplate(
        key="C_leg_day",
        title="Workout C: Leg Day (Foundation & Power)",
        mandatory=True,
        exercises=(
            _ex("Barbell Back Squat", 4, "6-8", 180),
            _ex("Dumbbell Lunges", 3, "10-12 per leg", 90),
            _ex("Kettlebell Swings", 4, "15-20", 90),
            _ex("Kettlebell Goblet Squat", 3, "10-12", 90),
            _ex("Box Jumps", 3, "5", 120),
        ),
    ),
    WorkoutTemplate(
        key="D_core_circuit",
        title="Workout D: Core Overload Circuit",
        mandatory=True,
        exercises=(
            _ex("TRX Knee Tucks", 3, "15", 90),
            _ex("Barbell Landmine Anti-Rotation", 3, "10 per side", 90),
            _ex("Medicine Ball Slams", 3, "12", 90),
            _ex("BOSU Ball Plank", 3, "45 sec", 90),
            _ex("Kettlebell Suitcase Carry", 3, "30 sec per side", 90),
        ),
    ),
    # Recovery/mobility session for rest days; excluded from cycles unless opted in
    WorkoutTemplate(
        key="optional_core_activation",
        title="Optional: Core Activation & Full Body Stretch",
        mandatory=False,
        exercises=(
            _ex("Dead Bug", 2, "10 per side", 45),
            _ex("Bird Dog", 2, "10 per side", 45),
            _ex("Plank", 2, "45-60 sec", 60),
            _ex("Wall Sit", 2, "30-60 sec", 60),
            _ex("Mountain Climbers", 2, "30 sec", 45),
        ),
    ),
)


class TemplateCatalog:
    """Read-only, ordered registry of workout templates keyed by template key."""

    def __init__(self, templates: Iterable[WorkoutTemplate] = DEFAULT_TEMPLATES):
        self._templates: dict[str, WorkoutTemplate] = {}
        for template in templates:
            if template.key in self._templates:
                raise ValueError(f"Duplicate template key: {template.key}")
            self._templates[template.key] = template

    def __iter__(self) -> Iterator[WorkoutTemplate]:
        return iter(self._templates.values())

    def __len__(self) -> int:
        return len(self._templates)

    def __contains__(self, key: object) -> bool:
        return key in self._templates

    def get(self, key: str) -> WorkoutTemplate | None:
        return self._templates.get(key)

    def keys(self) -> list[str]:
        return list(self._templates)

    def mandatory_keys(self) -> list[str]:
        return [t.key for t in self._templates.values() if t.mandatory]

    def selected_keys(self, include_in_analysis: dict[str, bool] | None = None) -> list[str]:
        """
        Template keys that count toward the cycle, in catalog order.

        Mandatory templates are in unless explicitly excluded (False);
        optional templates are out unless explicitly included (True).
        """
        overrides = include_in_analysis or {}
        selected = []
        for template in self._templates.values():
            override = overrides.get(template.key)
            if template.mandatory and override is not False:
                selected.append(template.key)
            elif not template.mandatory and override is True:
                selected.append(template.key)
        return selected


def get_default_catalog() -> TemplateCatalog:
    return TemplateCatalog(DEFAULT_TEMPLATES)
