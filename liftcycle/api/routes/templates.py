"""API routes for the workout template catalog."""
from fastapi import APIRouter, Depends

from liftcycle.api.routes.dependencies import get_container
from liftcycle.core.exceptions import NotFoundError
from liftcycle.schemas.workout import WorkoutTemplate
from liftcycle.services.container import ServiceContainer

router = APIRouter()


@router.get("", response_model=list[WorkoutTemplate])
async def list_templates(container: ServiceContainer = Depends(get_container)):
    return list(container.catalog)


@router.get("/{template_key}", response_model=WorkoutTemplate)
async def get_template(template_key: str, container: ServiceContainer = Depends(get_container)):
    template = container.catalog.get(template_key)
    if template is None:
        raise NotFoundError("template", f"Template {template_key} not found")
    return template
