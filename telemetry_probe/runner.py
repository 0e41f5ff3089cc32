"""
Service runner: configuration check, observability setup, serve, flush.

The server run is wrapped in a single try/except/finally. Any exception,
including a failed bind, is logged once at CRITICAL and not re-raised, so the
process still exits 0. The telemetry pipeline is flushed in every case.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

import uvicorn
from fastapi import FastAPI

from telemetry_probe.api.main import create_app
from telemetry_probe.config import Settings, get_settings
from telemetry_probe.console import (
    console,
    print_configuration_check,
    print_fatal,
    print_flush,
    print_remote_export,
    print_startup_banner,
)
from telemetry_probe.credentials import resolve_remote_export
from telemetry_probe.observability import initialize_observability

logger = logging.getLogger(__name__)


def send_startup_test_logs() -> None:
    """Emit one line per level as soon as the pipeline exists."""
    console.print("🧪 Sending test logs...")
    logger.info("🚀 TEST LOG #1 - Application starting at %s", datetime.now(timezone.utc).isoformat())
    logger.warning("⚠️ TEST LOG #2 - This is a warning message")
    logger.error("❌ TEST LOG #3 - This is an error message")
    console.print("✅ Test logs sent to all configured sinks")
    console.print()


def serve(app: FastAPI, settings: Settings) -> None:
    """
    Block in uvicorn until shutdown. Server logs go through our root handlers.

    Raises:
        RuntimeError: If the server never started (for example, the port is taken).
            uvicorn reports startup failures with sys.exit, which is turned into
            an ordinary exception here.
    """
    config = uvicorn.Config(
        app,
        host=settings.app_host,
        port=settings.app_port,
        log_config=None,
        log_level=settings.log_level.lower(),
        proxy_headers=True,
        forwarded_allow_ips="*",
    )
    server = uvicorn.Server(config)
    address = f"{settings.app_host}:{settings.app_port}"

    try:
        server.run()
    except SystemExit as exc:
        raise RuntimeError(f"Server failed to start on {address} (exit code {exc.code})") from exc

    if not server.started:
        raise RuntimeError(f"Server failed to start on {address}")


def run(settings: Optional[Settings] = None) -> None:
    """
    Start the service and block until it stops.

    Args:
        settings: Application settings, loaded from the environment when omitted
    """
    if settings is None:
        settings = get_settings()

    print_configuration_check(settings.grafana)
    remote = resolve_remote_export(settings.grafana)
    print_remote_export(remote)

    telemetry = initialize_observability(settings, remote)
    sinks = "Console and OpenTelemetry" if telemetry.remote_enabled else "Console"
    console.print(f"✅ Logger created with {sinks} sinks")
    console.print()

    send_startup_test_logs()

    try:
        app = create_app(settings, telemetry)
        print_startup_banner(settings)

        logger.info("🚀 Starting web application with Grafana OpenTelemetry")
        logger.info("📦 Service Name: %s", settings.service_name)
        logger.info("🏢 Service Namespace: %s", settings.service_namespace)

        serve(app, settings)
    except Exception as exc:
        logger.critical("💥 Application terminated unexpectedly", exc_info=True)
        print_fatal(exc)
    finally:
        print_flush(done=False)
        telemetry.shutdown()
        print_flush(done=True)
