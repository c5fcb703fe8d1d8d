"""API routes module."""
from liftcycle.api.routes.workouts import router as workouts_router
from liftcycle.api.routes.sessions import router as sessions_router
from liftcycle.api.routes.cycles import router as cycles_router
from liftcycle.api.routes.analysis import router as analysis_router
from liftcycle.api.routes.suggestions import router as suggestions_router
from liftcycle.api.routes.templates import router as templates_router
from liftcycle.api.routes.metrics import router as metrics_router

__all__ = [
    "workouts_router",
    "sessions_router",
    "cycles_router",
    "analysis_router",
    "suggestions_router",
    "templates_router",
    "metrics_router",
]
