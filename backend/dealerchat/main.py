"""FastAPI application bootstrap."""

import logging
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dealerchat.api.routers import health, inventory_import
from dealerchat.core.config import Settings, get_settings
from dealerchat.core.errors import ConfigurationError
from dealerchat.core.logging_config import configure_logging
from dealerchat.db.session import Database
from dealerchat.queues.job_queue import JobQueue
from dealerchat.services.progress_tracker import ProgressTracker
from dealerchat.utils.redis_client import create_redis_client
from dealerchat.workers.celery_app import create_celery_app

logger = logging.getLogger(__name__)


def build_job_queue(settings: Settings) -> JobQueue:
    tracker = ProgressTracker(
        create_redis_client(settings.redis_url, decode_responses=True),
        ttl=timedelta(seconds=settings.job_retention_seconds),
    )
    return JobQueue(create_celery_app(settings, main="dealerchat-api"), tracker)


async def http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
    # Structured details are the response body itself
    if isinstance(exc.detail, dict):
        body = exc.detail
    else:
        body = {"error": "Error", "message": str(exc.detail)}
    return JSONResponse(status_code=exc.status_code, content=body, headers=exc.headers)


def create_app(
    settings: Settings | None = None,
    database: Database | None = None,
    job_queue: JobQueue | None = None,
) -> FastAPI:
    """Instantiate the FastAPI app and include top-level routers.

    ``database`` and ``job_queue`` may be supplied already built; otherwise
    they are created on startup and released on shutdown.
    """
    if settings is None:
        settings = get_settings()
        configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = []
        if database is None or job_queue is None:
            missing = settings.missing_required()
            if missing:
                raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")
        app.state.database = database or Database(settings.database_url).connect()
        if database is None:
            owned.append(app.state.database)
        app.state.job_queue = job_queue or build_job_queue(settings)
        if job_queue is None:
            owned.append(app.state.job_queue)
        try:
            yield
        finally:
            for resource in owned:
                resource.close()

    app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)

    logger.info(f"[CORS] Allowed origins: {settings.cors_origins}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(HTTPException, http_error_handler)

    app.include_router(health.router)
    app.include_router(
        inventory_import.router,
        prefix="/api/admin/inventory/import",
        tags=["inventory"],
    )

    return app


app = create_app()
