"""
FastAPI application factory.

The app is built after observability is initialized, so the FastAPI
instrumentation and the route handlers share the same Telemetry handles.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from telemetry_probe import __version__
from telemetry_probe.api.routes import router
from telemetry_probe.config import Settings
from telemetry_probe.observability import Telemetry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, Any]:
    """Log startup and shutdown of the ASGI app."""
    settings: Settings = app.state.settings
    logger.info(
        "Application started: %s (namespace %s, env %s)",
        settings.service_name,
        settings.service_namespace,
        settings.app_env,
    )

    yield

    logger.info("Application shutdown")


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler for unhandled exceptions.
    """
    logger.error(
        "Unhandled exception on %s: %s",
        request.url.path,
        exc,
        exc_info=(type(exc), exc, exc.__traceback__),
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
            "message": "An unexpected error occurred. Please try again later.",
        },
    )


def create_app(settings: Settings, telemetry: Telemetry) -> FastAPI:
    """
    Build the FastAPI app with routes and inbound HTTP instrumentation.

    Args:
        settings: Application settings
        telemetry: Initialized observability handles

    Returns:
        Instrumented FastAPI application
    """
    app = FastAPI(
        title="Telemetry Probe",
        description="Emits test logs, traces and metrics to verify an OTLP backend such as Grafana Cloud.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.telemetry = telemetry

    app.add_exception_handler(Exception, global_exception_handler)
    app.include_router(router)

    telemetry.instrument_app(app)
    return app
