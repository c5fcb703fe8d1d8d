"""
Exercise classification.

Maps an exercise name to the tracking type that decides which set fields are
required for the set to count as complete. Matching is a case-sensitive
substring search against curated name lists, checked in precedence order:
weighted-duration, duration, bodyweight. Anything else is weighted.
"""

from __future__ import annotations

from liftcycle.models.enums import TrackingType
from liftcycle.schemas.workout import SetRecord


WEIGHTED_DURATION_EXERCISES: tuple[str, ...] = (
    "Kettlebell Farmer's March",
    "Kettlebell Suitcase Carry",
    "Farmer's Walk",
    "Farmer's Carry",
    "Suitcase Carry",
    "Overhead Carry",
    "Waiter's Walk",
)

DURATION_EXERCISES: tuple[str, ...] = (
    "Plank",
    "TRX Plank Saw",
    "Wall Sit",
    "Dead Hang",
    "L-Sit",
    "Hollow Body Hold",
    "Flutter Kicks",
    "Mountain Climbers",
)

BODYWEIGHT_EXERCISES: tuple[str, ...] = (
    "Pull-Ups",
    "Push-Ups",
    "TRX Push-Ups",
    "Ring Dips",
    "Dips",
    "Hanging Leg Raises",
    "Dead Bug",
    "Bird Dog",
    "Russian Twists",
    "TRX Pike",
    "TRX Oblique Crunches",
    "TRX Tricep Extensions",
    "Neutral Grip Pull-ups",
    "Air Squats",
    "Burpees",
    "Box Jumps",
)

# Checked first to last; first list with a match wins
_PRECEDENCE: tuple[tuple[TrackingType, tuple[str, ...]], ...] = (
    (TrackingType.WEIGHTED_DURATION, WEIGHTED_DURATION_EXERCISES),
    (TrackingType.DURATION, DURATION_EXERCISES),
    (TrackingType.BODYWEIGHT, BODYWEIGHT_EXERCISES),
)

REQUIRED_FIELDS: dict[TrackingType, tuple[str, ...]] = {
    TrackingType.WEIGHTED: ("weight", "reps"),
    TrackingType.BODYWEIGHT: ("weight", "reps"),
    TrackingType.DURATION: ("duration_seconds",),
    TrackingType.WEIGHTED_DURATION: ("weight", "duration_seconds"),
}


def classify(exercise_name: str) -> TrackingType:
    for tracking_type, names in _PRECEDENCE:
        if any(name in exercise_name for name in names):
            return tracking_type
    return TrackingType.WEIGHTED


def required_fields(tracking_type: TrackingType) -> tuple[str, ...]:
    return REQUIRED_FIELDS[tracking_type]


def is_set_complete(exercise_name: str, record: SetRecord | None) -> bool:
    """True when every field required by the exercise's tracking type is entered.

    Zero counts as not entered, the same as a missing value.
    """
    if record is None:
        return False
    return all(getattr(record, field) for field in required_fields(classify(exercise_name)))
