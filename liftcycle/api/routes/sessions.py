"""API routes for opening and caching in-progress workout sessions."""
from fastapi import APIRouter, Depends, Query, Response, status

from liftcycle.api.routes.dependencies import get_container, require_user_id
from liftcycle.core.exceptions import ValidationError
from liftcycle.schemas.workout import StartedSession, WorkoutSession
from liftcycle.services.container import ServiceContainer

router = APIRouter()


@router.post("/{template_key}", response_model=StartedSession)
async def open_session(
    template_key: str,
    bodyweight: float | None = Query(None, gt=0),
    user_id: str = Depends(require_user_id),
    container: ServiceContainer = Depends(get_container),
):
    """Start a session for a template, or resume its cached draft.

    The response carries the previous workout of the same template so the
    client can show last time's numbers next to each set.
    """
    _, autosave, started = await container.open_session(user_id, template_key, bodyweight)
    await autosave.flush()
    return started


@router.put("/{template_key}/draft", status_code=status.HTTP_204_NO_CONTENT)
async def cache_draft(
    template_key: str,
    session: WorkoutSession,
    user_id: str = Depends(require_user_id),
    container: ServiceContainer = Depends(get_container),
):
    """Cache an in-progress session so the next open_session resumes it."""
    if session.template_key != template_key:
        raise ValidationError(
            "template_key", f"draft is for '{session.template_key}', not '{template_key}'"
        )
    if container.catalog.get(template_key) is None:
        raise ValidationError("template_key", f"unknown template '{template_key}'")

    await container.workout_repository(user_id).save_draft(session)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
