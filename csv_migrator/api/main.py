"""
FastAPI application with assembled routers.

Initializes the FastAPI app, starts the migration runtime in the lifespan
(database check, tables, progress poll, optional in-process worker and
scheduled import) and configures the uvicorn server.

Dependencies: fastapi, uvicorn, csv_migrator.api.routers, csv_migrator.application.runtime
System role: API entry point with router assembly and server launch
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from csv_migrator.application.runtime import MigrationRuntime
from csv_migrator.configs import Settings, get_settings
from csv_migrator.observability.logger import configure_logging
from csv_migrator.observability.middleware import CorrelationMiddleware, RequestLoggingMiddleware

from .routers import (
    config_router,
    health_router,
    jobs_router,
    preview_router,
    progress_router,
    uploads_router,
)

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Starts the runtime on startup and stops it (waiting for an in-flight
    job) on shutdown.
    """
    settings: Settings = app.state.settings
    runtime = MigrationRuntime(settings)
    app.state.runtime = runtime
    await runtime.start(run_worker=settings.run_worker)
    logger.info(f"{__name__}:lifespan - Migration runtime started", extra={"run_worker": settings.run_worker})

    yield

    await runtime.stop()
    logger.info(f"{__name__}:lifespan - Migration runtime stopped")


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Create and configure FastAPI application with routers.

    Args:
        settings: Settings to build the runtime from (defaults to environment)

    Returns:
        FastAPI: Configured application instance with all routers registered
    """
    app = FastAPI(
        title="CSV Migrator API",
        description="CSV to document store migration with resumable chunked processing",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings or get_settings()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    # Last added runs first: the correlation id is bound before the access log line
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(CorrelationMiddleware)

    routers = (health_router, uploads_router, preview_router, jobs_router, progress_router, config_router)
    for router in routers:
        app.include_router(router, prefix=API_PREFIX)

    return app


def main() -> None:
    """Run the API server."""
    settings = get_settings()
    configure_logging(settings.log_level)
    uvicorn.run(
        "csv_migrator.api.main:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
