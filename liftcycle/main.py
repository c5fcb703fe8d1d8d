"""Main FastAPI application."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from liftcycle import __version__
from liftcycle.config.settings import get_settings
from liftcycle.core.error_handlers import register_error_handlers
from liftcycle.core.logging import configure_logging
from liftcycle.core.metrics import set_app_info
from liftcycle.db.database import async_session_maker, close_all_engines, init_db
from liftcycle.middleware import RequestIDMiddleware
from liftcycle.repositories import SQLItemStore
from liftcycle.services.container import ServiceContainer

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    settings = get_settings()
    configure_logging()

    # Startup: tests may install their own container before the app starts
    if getattr(app.state, "container", None) is None:
        await init_db()
        store = SQLItemStore(async_session_maker, timeout=settings.store_timeout)
        app.state.container = ServiceContainer.from_settings(settings, store)
    set_app_info(__version__, "debug" if settings.debug else "production")

    yield

    # Shutdown: finish saving completed sessions, then in-flight analyses
    await app.state.container.drain_sessions()
    await app.state.container.dispatcher.drain()

    from liftcycle.llm import cleanup_llm_provider
    await cleanup_llm_provider()

    try:
        await close_all_engines()
    except Exception as e:
        logger.warning(f"Failed to close database engines: {e}")


def create_app(container: ServiceContainer | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Training-cycle tracker with AI coaching analysis",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIDMiddleware)

    register_error_handlers(app)

    from liftcycle.api.routes import (
        workouts_router,
        sessions_router,
        cycles_router,
        analysis_router,
        suggestions_router,
        templates_router,
        metrics_router,
    )

    app.include_router(workouts_router, prefix="/api/workouts", tags=["Workouts"])
    app.include_router(sessions_router, prefix="/api/sessions", tags=["Sessions"])
    app.include_router(cycles_router, prefix="/api/cycles", tags=["Cycles"])
    app.include_router(analysis_router, prefix="/api/analysis", tags=["Analysis"])
    app.include_router(suggestions_router, prefix="/api/suggestions", tags=["Suggestions"])
    app.include_router(templates_router, prefix="/api/templates", tags=["Templates"])
    app.include_router(metrics_router, tags=["Monitoring"])

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("liftcycle.main:app", host="0.0.0.0", port=8000, reload=True)
