"""API routes for saving and listing workouts."""
import logging
from datetime import date

from fastapi import APIRouter, Depends, Query, Response, status

from liftcycle.api.routes.dependencies import get_container, get_current_user_id, require_user_id
from liftcycle.core.exceptions import AuthenticationError, ValidationError
from liftcycle.schemas.workout import SaveWorkoutResponse, WorkoutSession
from liftcycle.services.container import ServiceContainer
from liftcycle.services.offline_queue import ReplayReport

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("", response_model=SaveWorkoutResponse, status_code=status.HTTP_201_CREATED)
async def save_workout(
    workout: WorkoutSession,
    response: Response,
    user_id: str = Depends(require_user_id),
    container: ServiceContainer = Depends(get_container),
):
    """Save a workout session and run the cycle completion check.

    Responds 202 with offline=true when the store could not be reached; the
    workout is then held in the local queue until replayed.
    """
    result = await container.workout_service(user_id).save_workout(workout)
    if result.offline:
        response.status_code = status.HTTP_202_ACCEPTED
    return result


@router.get("", response_model=list[WorkoutSession])
async def list_workouts(
    user_id_param: str | None = Query(None, alias="userId"),
    limit: int = Query(50, ge=1, le=500),
    start: date | None = Query(None, alias="from"),
    end: date | None = Query(None, alias="to"),
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
):
    """Most recent workouts first, or a date range (inclusive, oldest first) with from/to."""
    if user_id_param is not None and user_id_param != user_id:
        raise AuthenticationError(
            "userId does not match the authenticated caller", code="AUTH_USER_MISMATCH"
        )

    workouts = container.workout_repository(user_id)
    if start is None and end is None:
        logger.info(f"Listing recent workouts for {user_id} (limit={limit})")
        return await workouts.list_recent(limit=limit)

    start, end = start or date.min, end or date.max
    if start > end:
        raise ValidationError("date_range", f"'from' ({start}) is after 'to' ({end})")
    logger.info(f"Listing workouts for {user_id} between {start} and {end}")
    return (await workouts.list_by_date_range(start, end))[:limit]


@router.post("/replay", response_model=ReplayReport)
async def replay_offline_workouts(
    user_id: str = Depends(require_user_id),
    container: ServiceContainer = Depends(get_container),
):
    """Retry saves that were queued while the store was unreachable."""
    return await container.workout_service(user_id).replay_offline()
