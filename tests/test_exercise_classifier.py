"""Tests for exercise classification and per-type set completeness."""
import pytest

from liftcycle.models.enums import TrackingType
from liftcycle.schemas.workout import SetRecord
from liftcycle.services.exercise_classifier import (
    BODYWEIGHT_EXERCISES,
    DURATION_EXERCISES,
    WEIGHTED_DURATION_EXERCISES,
    classify,
    is_set_complete,
    required_fields,
)


class TestClassify:
    """Test name-to-tracking-type classification."""

    @pytest.mark.parametrize("name", WEIGHTED_DURATION_EXERCISES)
    def test_weighted_duration_wins_over_other_lists(self, name):
        """Weighted-duration names never classify as bodyweight or duration."""
        assert classify(name) == TrackingType.WEIGHTED_DURATION

    def test_weighted_duration_matches_by_substring(self):
        assert classify("Heavy Farmer's Walk (trap bar)") == TrackingType.WEIGHTED_DURATION

    def test_duration_exercises(self):
        assert classify("Plank") == TrackingType.DURATION
        assert classify("TRX Plank Saw") == TrackingType.DURATION
        assert classify("BOSU Ball Plank") == TrackingType.DURATION
        assert classify("Mountain Climbers") == TrackingType.DURATION

    def test_bodyweight_exercises(self):
        assert classify("Pull-Ups") == TrackingType.BODYWEIGHT
        assert classify("Ring Dips") == TrackingType.BODYWEIGHT
        assert classify("Neutral Grip Pull-ups") == TrackingType.BODYWEIGHT
        assert classify("Box Jumps") == TrackingType.BODYWEIGHT

    def test_unknown_names_default_to_weighted(self):
        assert classify("Barbell Bench Press") == TrackingType.WEIGHTED
        assert classify("Bench") == TrackingType.WEIGHTED
        assert classify("") == TrackingType.WEIGHTED

    def test_matching_is_case_sensitive(self):
        assert classify("plank") == TrackingType.WEIGHTED

    def test_lists_are_disjoint_in_effect(self):
        """Every curated name classifies to the list it belongs to or a higher one."""
        for name in DURATION_EXERCISES:
            assert classify(name) in (TrackingType.DURATION, TrackingType.WEIGHTED_DURATION)
        for name in BODYWEIGHT_EXERCISES:
            assert classify(name) != TrackingType.WEIGHTED


class TestSetCompleteness:
    """Test the per-type required-field rule."""

    def test_required_fields(self):
        assert required_fields(TrackingType.WEIGHTED) == ("weight", "reps")
        assert required_fields(TrackingType.BODYWEIGHT) == ("weight", "reps")
        assert required_fields(TrackingType.DURATION) == ("duration_seconds",)
        assert required_fields(TrackingType.WEIGHTED_DURATION) == ("weight", "duration_seconds")

    def test_weighted_needs_weight_and_reps(self):
        assert is_set_complete("Bench", SetRecord(weight=225, reps=5))
        assert not is_set_complete("Bench", SetRecord(weight=225))
        assert not is_set_complete("Bench", SetRecord(reps=5))

    def test_zero_counts_as_missing(self):
        assert not is_set_complete("Bench", SetRecord(weight=0, reps=5))

    def test_bodyweight_needs_weight_and_reps(self):
        assert is_set_complete("Pull-Ups", SetRecord(weight=185, reps=8))
        assert not is_set_complete("Pull-Ups", SetRecord(reps=8))

    def test_duration_needs_only_duration(self):
        assert is_set_complete("Plank", SetRecord(duration_seconds=45))
        assert not is_set_complete("Plank", SetRecord(weight=20, reps=10))

    def test_weighted_duration_needs_weight_and_duration(self):
        assert is_set_complete("Kettlebell Suitcase Carry", SetRecord(weight=53, duration_seconds=30))
        assert not is_set_complete("Kettlebell Suitcase Carry", SetRecord(duration_seconds=30))
        assert not is_set_complete("Kettlebell Suitcase Carry", SetRecord(weight=53, reps=10))

    def test_missing_record_is_incomplete(self):
        assert not is_set_complete("Bench", None)
