"""
Operator-facing console output (rich).

This is plain terminal output for whoever starts the service, separate from
the logging pipeline: nothing printed here is exported over OTLP.
"""

from typing import Optional

from rich.console import Console
from rich.panel import Panel

from telemetry_probe.api.schemas import loki_query
from telemetry_probe.config import GrafanaSettings, Settings
from telemetry_probe.credentials import CLOUD_TOKEN_PREFIX, OTEL_ENDPOINT_VAR, OTEL_HEADERS_VAR, RemoteExport

console = Console()

NOT_SET = "❌ NOT SET"


def configuration_check_lines(grafana: GrafanaSettings) -> list[str]:
    """Describe the Grafana settings without revealing the token."""
    if grafana.token_configured:
        token_state = f"✅ SET (length: {grafana.token_length})"
    else:
        token_state = NOT_SET

    starts_with_prefix = bool(grafana.api_token and grafana.api_token.startswith(CLOUD_TOKEN_PREFIX))
    return [
        f"📍 Endpoint: {grafana.otlp_endpoint or NOT_SET}",
        f"🔑 Token: {token_state}",
        f"🆔 Instance ID: {grafana.instance_id}",
        f"🔐 Token starts with '{CLOUD_TOKEN_PREFIX}': {starts_with_prefix}",
    ]


def print_configuration_check(grafana: GrafanaSettings, out: Optional[Console] = None) -> None:
    out = out or console
    out.print(Panel("Grafana Configuration Check", expand=False))
    for line in configuration_check_lines(grafana):
        out.print(line, highlight=False, markup=False)
    out.print()


def print_remote_export(remote: Optional[RemoteExport], out: Optional[Console] = None) -> None:
    """Report which export mode was selected."""
    out = out or console
    if remote is None:
        out.print("❌ Missing Grafana configuration - Logs will only appear in Console", highlight=False)
        out.print()
        return

    if remote.cloud_token:
        out.print(f"🔧 Using {CLOUD_TOKEN_PREFIX} token format with Instance ID", highlight=False)
    else:
        out.print("🔧 Using pre-encoded token", highlight=False)
    out.print(f"✅ {OTEL_ENDPOINT_VAR} set to: {remote.endpoint}", highlight=False, markup=False)
    out.print(f"✅ {OTEL_HEADERS_VAR} configured", highlight=False)
    out.print(f"✅ Auth Header (first 20 chars): {remote.header_preview}", highlight=False, markup=False)
    out.print()


def print_startup_banner(settings: Settings, out: Optional[Console] = None) -> None:
    out = out or console
    out.print(Panel("Application Starting", expand=False))
    out.print()
    out.print("📋 Available Test Endpoints:")
    out.print("   • GET /log - Send test logs")
    out.print("   • GET /test-telemetry - Send test traces")
    out.print("   • GET /test-connection - Full connection test")
    out.print("   • GET /health - Health check")
    out.print()
    out.print("🔍 To verify Grafana connection:")
    out.print("   1. Call any endpoint above")
    out.print("   2. Wait 30-60 seconds")
    out.print("   3. Go to Grafana Cloud → Explore → Loki")
    out.print(f"   4. Query: {loki_query(settings.service_name)}", highlight=False, markup=False)
    out.print("   5. Set time range to 'Last 5 minutes'")
    out.print()
    out.print(f"✅ Application is ready on http://{settings.app_host}:{settings.app_port}", highlight=False)
    out.print()


def print_endpoint_called(path: str, out: Optional[Console] = None) -> None:
    (out or console).print(f"🔔 {path} endpoint called", highlight=False)


def print_fatal(exc: BaseException, out: Optional[Console] = None) -> None:
    (out or console).print(f"❌ Fatal Error: {exc}", highlight=False, markup=False)


def print_flush(done: bool, out: Optional[Console] = None) -> None:
    out = out or console
    if done:
        out.print("✅ Logs flushed successfully")
    else:
        out.print("🛑 Shutting down - flushing logs...")
