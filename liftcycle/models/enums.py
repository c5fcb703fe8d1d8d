"""Enumerations shared by the models, schemas and services."""
from enum import Enum


class TrackingType(str, Enum):
    """Which fields a set needs before it counts as complete."""
    WEIGHTED = "weighted"
    BODYWEIGHT = "bodyweight"
    DURATION = "duration"
    WEIGHTED_DURATION = "weighted_duration"


class FatigueLevel(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


class ProgressRate(str, Enum):
    SLOW = "slow"
    OPTIMAL = "optimal"
    FAST = "fast"


class Adjustment(str, Enum):
    INCREASE = "increase"
    MAINTAIN = "maintain"
    DECREASE = "decrease"


class RPETrend(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class ItemType(str, Enum):
    """Discriminator stored alongside every item in the single-table store."""
    USER_PROFILE = "USER_PROFILE"
    WORKOUT = "WORKOUT"
    SESSION_DRAFT = "SESSION_DRAFT"
    CURRENT_CYCLE = "CURRENT_CYCLE"
    CYCLE_ARCHIVE = "CYCLE_ARCHIVE"
    AI_ANALYSIS = "AI_ANALYSIS"
    AI_SUGGESTIONS = "AI_SUGGESTIONS"
