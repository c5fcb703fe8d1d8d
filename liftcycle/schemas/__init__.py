"""Pydantic schemas for requests, responses and stored records."""
from liftcycle.schemas.analysis import (
    AnalysisResult,
    AnalysisTriggerRequest,
    CycleData,
    ExercisePerformance,
    ExerciseRecommendation,
    ExerciseSuggestion,
    OverallAssessment,
    TrainingModifications,
    UserProfile,
)
from liftcycle.schemas.cycle import (
    CycleArchive,
    CycleClosed,
    CycleConfigurationRequest,
    CycleProgress,
    CycleState,
    CycleStatus,
)
from liftcycle.schemas.workout import (
    ExerciseSpec,
    SaveWorkoutResponse,
    SessionSummary,
    StartedSession,
    SetRecord,
    WorkoutSession,
    WorkoutTemplate,
)

__all__ = [
    "AnalysisResult",
    "AnalysisTriggerRequest",
    "CycleData",
    "ExercisePerformance",
    "ExerciseRecommendation",
    "ExerciseSuggestion",
    "OverallAssessment",
    "TrainingModifications",
    "UserProfile",
    "CycleArchive",
    "CycleClosed",
    "CycleConfigurationRequest",
    "CycleProgress",
    "CycleState",
    "CycleStatus",
    "ExerciseSpec",
    "SaveWorkoutResponse",
    "SessionSummary",
    "StartedSession",
    "SetRecord",
    "WorkoutSession",
    "WorkoutTemplate",
]
