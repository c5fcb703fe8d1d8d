"""API routes for per-exercise suggestions from the latest analysis."""
from typing import Any

from fastapi import APIRouter, Depends

from liftcycle.api.routes.dependencies import get_container, get_current_user_id
from liftcycle.schemas.analysis import ExerciseSuggestion
from liftcycle.services.container import ServiceContainer
from liftcycle.services.cycle_analysis import smart_defaults

router = APIRouter()


@router.get("", response_model=dict[str, dict[str, Any]])
async def get_smart_defaults(
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
):
    """Input defaults for the next session, keyed by exercise name."""
    suggestions = await container.analysis_repository(user_id).get_latest_suggestions()
    return smart_defaults(suggestions)


@router.get("/{exercise_name}", response_model=ExerciseSuggestion)
async def get_suggestion(
    exercise_name: str,
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
):
    """Latest suggestion for one exercise, or a conservative default."""
    return await container.analysis_repository(user_id).get_suggestion(exercise_name)
