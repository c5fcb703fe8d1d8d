from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from starlette.requests import Request

from liftcycle.api.routes.dependencies import get_container
from liftcycle.core.logging import get_logger
from liftcycle.core.metrics import get_metrics
from liftcycle.core.exceptions import PersistenceError
from liftcycle.services.container import ServiceContainer


logger = get_logger(__name__)
router = APIRouter()


@router.get("/metrics", include_in_schema=False)
async def prometheus_metrics(request: Request):
    try:
        metrics_data = get_metrics()
        return Response(
            content=metrics_data,
            media_type="text/plain; version=0.0.4; charset=utf-8"
        )
    except Exception as e:
        logger.error("Failed to generate metrics", exc_info=e)
        raise HTTPException(status_code=500, detail="Failed to generate metrics")


@router.get("/health", include_in_schema=False)
async def health_check(container: ServiceContainer = Depends(get_container)):
    return {
        "status": "healthy",
        "app": container.settings.app_name,
        "pending_analyses": container.dispatcher.pending,
        "offline_queue": len(container.offline_queue),
        "features": asdict(container.features),
    }


@router.get("/health/store", include_in_schema=False)
async def store_health_check(container: ServiceContainer = Depends(get_container)):
    try:
        await container.store.get("HEALTH", "CHECK")
        return {"status": "healthy", "store": "connected"}
    except PersistenceError as e:
        logger.error("Store health check failed", error=e.message)
        return {"status": "unhealthy", "store": "disconnected", "error": e.message}


@router.get("/health/llm", include_in_schema=False)
async def llm_health_check(container: ServiceContainer = Depends(get_container)):
    """Check LLM provider availability."""
    provider = container.provider_factory()
    is_healthy = await provider.health_check()

    return {
        "status": "healthy" if is_healthy else "unhealthy",
        "provider": container.settings.llm_provider,
        "model": container.settings.anthropic_model,
    }
