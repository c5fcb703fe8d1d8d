"""API routes for the training cycle."""
from fastapi import APIRouter, Depends

from liftcycle.api.routes.dependencies import get_container, get_current_user_id, require_user_id
from liftcycle.schemas.cycle import (
    CycleArchive,
    CycleConfigurationRequest,
    CycleProgress,
    CycleStatus,
)
from liftcycle.services.container import ServiceContainer

router = APIRouter()


@router.get("/current", response_model=CycleStatus)
async def get_current_cycle(
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
):
    state = await container.cycle_tracker(user_id).get_state()
    return CycleStatus.from_state(state)


@router.put("/configuration", response_model=CycleProgress)
async def configure_cycle(
    request: CycleConfigurationRequest,
    user_id: str = Depends(require_user_id),
    container: ServiceContainer = Depends(get_container),
):
    """Change which templates count toward the cycle.

    A changed selection starts the cycle over unless the
    reset_cycle_on_selection_change flag is off.
    """
    return await container.cycle_tracker(user_id).configure(request.include_in_analysis)


@router.get("/history", response_model=list[CycleArchive])
async def list_cycle_history(
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
):
    return await container.cycle_tracker(user_id).list_archives()
