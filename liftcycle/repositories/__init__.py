"""Repositories package."""
from liftcycle.repositories.analysis_repository import AnalysisRepository
from liftcycle.repositories.base import Repository
from liftcycle.repositories.cycle_repository import CycleRepository, ProfileRepository
from liftcycle.repositories.item_store import ItemStore, SQLItemStore
from liftcycle.repositories.workout_repository import WorkoutRepository

__all__ = [
    "AnalysisRepository",
    "Repository",
    "CycleRepository",
    "ProfileRepository",
    "ItemStore",
    "SQLItemStore",
    "WorkoutRepository",
]
