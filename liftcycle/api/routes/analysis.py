"""API routes for cycle analysis."""
import logging

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from liftcycle.api.routes.dependencies import get_container, get_current_user_id, require_user_id
from liftcycle.core.exceptions import NotFoundError
from liftcycle.schemas.analysis import AnalysisResult, AnalysisTriggerRequest
from liftcycle.services.container import ServiceContainer

router = APIRouter()
logger = logging.getLogger(__name__)


class AnalysisScheduled(BaseModel):
    cycle_number: int
    scheduled: bool = True


@router.post("", response_model=AnalysisResult)
async def run_analysis(
    request: AnalysisTriggerRequest | None = None,
    user_id: str = Depends(require_user_id),
    container: ServiceContainer = Depends(get_container),
):
    """Analyze a cycle and wait for the result.

    Defaults to the most recently closed cycle.
    """
    cycle_number = request.cycle_number if request else None
    return await container.analysis_service(user_id).run(cycle_number)


@router.post("/trigger", response_model=AnalysisScheduled, status_code=status.HTTP_202_ACCEPTED)
async def trigger_analysis(
    request: AnalysisTriggerRequest | None = None,
    user_id: str = Depends(require_user_id),
    container: ServiceContainer = Depends(get_container),
):
    """Schedule a background analysis with retry and return immediately."""
    service = container.analysis_service(user_id)
    cycle_number = await service.resolve_cycle_number(request.cycle_number if request else None)
    container.dispatcher.schedule(service, cycle_number)
    logger.info(f"Analysis for cycle {cycle_number} triggered by {user_id}")
    return AnalysisScheduled(cycle_number=cycle_number)


@router.get("/{cycle_number}", response_model=AnalysisResult)
async def get_analysis(
    cycle_number: int,
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
):
    result = await container.analysis_repository(user_id).get(cycle_number)
    if result is None:
        raise NotFoundError("analysis", f"No analysis stored for cycle {cycle_number}")
    return result
