"""racitrack - RACI task tracking service."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse

from src.core.db_client import close_connection, init_db
from src.core.errors import NotFoundError
from src.core.logging import configure_logfire, instrument_fastapi
from src.core.module_registry import get_modules
from src.core.scheduler import get_scheduled_job_names, start_scheduler, stop_scheduler
from src.core.scheduler_tracker import job_tracker
from src.domain.user import Actor
from src.interface.auth import capabilities_for, get_current_actor
from src.interface.error_handlers import register_exception_handlers
from src.modules import register_default_modules
from src.modules.directory import service as directory_service


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    # Startup
    # Configure logging first so startup logs are captured
    configure_logfire()

    await init_db()
    logger.info("Database initialized")

    start_scheduler()
    yield
    # Shutdown
    stop_scheduler()
    await close_connection()


def create_app() -> FastAPI:
    """Build the application with every registered module's routers."""
    register_default_modules()

    application = FastAPI(
        title="racitrack",
        description="RACI task tracking with audited status changes",
        version="0.1.0",
        lifespan=lifespan,
    )
    register_exception_handlers(application)

    # Instrument FastAPI with Logfire
    instrument_fastapi(application)

    # Register routers
    for module in get_modules().values():
        for router in module.get_routers():
            application.include_router(router)

    @application.get("/health")
    async def health_check() -> JSONResponse:
        """Health check endpoint."""
        return JSONResponse(content={"status": "healthy"}, status_code=200)

    @application.get("/health/scheduler")
    async def scheduler_health_check() -> JSONResponse:
        """Scheduler health check endpoint with job statuses."""
        job_statuses = {}
        for job_name in get_scheduled_job_names():
            job_statuses[job_name] = await job_tracker.get_job_status(job_name)

        # Get dead letter queue
        dlq = job_tracker.get_dead_letter_queue()

        # Determine overall health
        has_failures = any(status["consecutive_failures"] > 0 for status in job_statuses.values())

        overall_status = "degraded" if has_failures else "healthy"
        if len(dlq) > 0:
            overall_status = "critical"

        return JSONResponse(
            content={
                "status": overall_status,
                "jobs": job_statuses,
                "dead_letter_queue_size": len(dlq),
                "dead_letter_queue": dlq,
            },
            status_code=200 if overall_status == "healthy" else 503,
        )

    @application.get("/me")
    async def me(actor: Actor = Depends(get_current_actor)) -> JSONResponse:
        """The caller's profile, roles, and the sections they may open."""
        try:
            profile = (await directory_service.get_user_profile(actor.user_id)).model_dump(mode="json")
        except NotFoundError:
            profile = None
        return JSONResponse(
            content={
                "user_id": actor.user_id,
                "profile": profile,
                "roles": sorted(role.value for role in actor.roles),
                "capabilities": capabilities_for(actor),
            }
        )

    return application


app = create_app()
