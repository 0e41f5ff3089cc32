"""
API routes for the connectivity test endpoints.

Each handler is stateless: it writes a fixed set of log lines (and, for
/test-telemetry, one span) and returns a fixed-shape JSON body.
"""

import asyncio
import logging
import time
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from telemetry_probe.api.schemas import (
    ConnectionConfiguration,
    ConnectionTestResponse,
    GrafanaInstructions,
    HealthResponse,
    LogResponse,
    TelemetryResponse,
    loki_query,
    utc_now,
)
from telemetry_probe.config import Settings
from telemetry_probe.console import print_endpoint_called
from telemetry_probe.observability import Telemetry, get_trace_context

logger = logging.getLogger(__name__)

SIMULATED_WORK_SECONDS = 0.1
NOT_SET = "NOT SET"

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))

router = APIRouter(tags=["Telemetry Tests"])


# Dependency injection
def get_app_settings(request: Request) -> Settings:
    settings = getattr(request.app.state, "settings", None)
    if settings is None:
        raise HTTPException(status_code=503, detail="Settings not initialized")
    return settings


def get_telemetry(request: Request) -> Telemetry:
    telemetry = getattr(request.app.state, "telemetry", None)
    if telemetry is None:
        raise HTTPException(status_code=503, detail="Telemetry not initialized")
    return telemetry


@router.get("/", include_in_schema=False)
async def root() -> RedirectResponse:
    return RedirectResponse(url="/Index", status_code=status.HTTP_302_FOUND)


@router.get("/Index", response_class=HTMLResponse, include_in_schema=False)
async def index(request: Request, settings: Settings = Depends(get_app_settings)):
    """Landing page listing the test endpoints."""
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "service_name": settings.service_name,
            "grafana_configured": settings.grafana.endpoint_configured,
            "loki_query": loki_query(settings.service_name),
        },
    )


@router.get("/log", response_model=LogResponse)
async def write_test_logs(settings: Settings = Depends(get_app_settings)) -> LogResponse:
    """Write one information, one warning and one error line."""
    print_endpoint_called("/log")
    logger.info("📝 Test log from /log endpoint - hit at %s", utc_now().isoformat())
    logger.warning("⚠️ Warning message from /log endpoint")
    logger.error("❌ Error message from /log endpoint")

    return LogResponse(
        grafana_configured=settings.grafana.endpoint_configured,
        instructions=(
            f"Check Grafana Explore → Loki → Query: {loki_query(settings.service_name)} "
            "in the last 5 minutes"
        ),
    )


@router.get("/test-telemetry", response_model=TelemetryResponse)
async def send_test_telemetry(
    settings: Settings = Depends(get_app_settings),
    telemetry: Telemetry = Depends(get_telemetry),
) -> TelemetryResponse:
    """Record a TestOperation span with two tags and one event."""
    print_endpoint_called("/test-telemetry")

    with telemetry.tracer.start_as_current_span("TestOperation") as span:
        span.set_attribute("test.type", "manual")
        span.set_attribute("test.timestamp", utc_now().isoformat())
        span.add_event(f"Test event from {settings.service_name}")

        logger.info("🔬 Test telemetry sent to Grafana at %s", utc_now().isoformat())

        # Simulate some work
        await asyncio.sleep(SIMULATED_WORK_SECONDS)

        trace_context = get_trace_context()
        return TelemetryResponse(
            trace_id=trace_context.get("trace_id"),
            span_id=trace_context.get("span_id"),
            service_name=settings.service_name,
        )


@router.get("/test-connection", response_model=ConnectionTestResponse)
async def run_connection_test(
    settings: Settings = Depends(get_app_settings),
    telemetry: Telemetry = Depends(get_telemetry),
) -> ConnectionTestResponse:
    """
    Full connection test: report configuration, send three logs and flush them.

    The pipelines are drained with a bounded force_flush instead of a fixed
    pause, but the response still waits at least
    connection_test_min_wait_seconds from request receipt.
    """
    started = time.monotonic()
    print_endpoint_called("/test-connection")

    grafana = settings.grafana
    results = ConnectionTestResponse(
        configuration=ConnectionConfiguration(
            endpoint_configured=grafana.endpoint_configured,
            endpoint=grafana.otlp_endpoint or NOT_SET,
            token_configured=grafana.token_configured,
            token_length=grafana.token_length,
            instance_id=grafana.instance_id,
        ),
        grafana_instructions=GrafanaInstructions(step3=f"Query: {loki_query(settings.service_name)}"),
    )

    logger.info("🧪 Connection test initiated at %s", utc_now().isoformat())
    logger.warning("⚠️ Connection test warning")
    logger.error("❌ Connection test error")

    loop = asyncio.get_running_loop()
    flushed = await loop.run_in_executor(None, telemetry.flush, settings.flush_timeout_seconds)
    if not flushed:
        logger.warning("Telemetry flush did not finish within %.1fs", settings.flush_timeout_seconds)

    remaining = settings.connection_test_min_wait_seconds - (time.monotonic() - started)
    if remaining > 0:
        await asyncio.sleep(remaining)

    return results


@router.get("/health", response_model=HealthResponse)
async def health(settings: Settings = Depends(get_app_settings)) -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(grafana_configured=settings.grafana.endpoint_configured)
