"""
Pytest configuration and fixtures for telemetry probe tests.
"""

from typing import Any, AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from telemetry_probe.api.main import create_app
from telemetry_probe.config import GrafanaSettings, Settings, get_settings
from telemetry_probe.observability import initialize_observability

GRAFANA_ENV_VARS = [
    "GRAFANA__OTLPENDPOINT",
    "GRAFANA__OTLP_ENDPOINT",
    "GRAFANA__APITOKEN",
    "GRAFANA__API_TOKEN",
    "GRAFANA__INSTANCEID",
    "GRAFANA__INSTANCE_ID",
    "OTEL_EXPORTER_OTLP_ENDPOINT",
    "OTEL_EXPORTER_OTLP_HEADERS",
    "OTEL_EXPORTER_OTLP_PROTOCOL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate every test from the caller's Grafana variables, .env and config.yml."""
    for name in GRAFANA_ENV_VARS:
        # setenv first so monkeypatch restores anything a test writes to os.environ
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Console-only settings: no endpoint, no token."""
    return Settings(
        grafana=GrafanaSettings(otlp_endpoint=None, api_token=None),
        config_file=tmp_path / "missing.yml",
    )


@pytest.fixture
def configured_settings(tmp_path) -> Settings:
    """Settings with an endpoint and a cloud token."""
    return Settings(
        grafana=GrafanaSettings(
            otlp_endpoint="https://otlp-gateway.example.net/otlp",
            api_token="glc_test_token_value",
            instance_id="424242",
        ),
        config_file=tmp_path / "missing.yml",
    )


@pytest.fixture
def telemetry(settings):
    """Telemetry without remote export and without touching global providers."""
    telemetry = initialize_observability(settings, None, set_global=False)
    yield telemetry
    telemetry.shutdown()


@pytest.fixture
def span_exporter(telemetry) -> InMemorySpanExporter:
    """Capture finished spans from the test tracer provider."""
    exporter = InMemorySpanExporter()
    telemetry.tracer_provider.add_span_processor(SimpleSpanProcessor(exporter))
    return exporter


def build_client(settings: Settings, telemetry) -> AsyncClient:
    app = create_app(settings, telemetry)
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest_asyncio.fixture
async def client(settings, telemetry) -> AsyncGenerator[AsyncClient, Any]:
    """HTTP client for the console-only app."""
    async with build_client(settings, telemetry) as ac:
        yield ac


@pytest_asyncio.fixture
async def configured_client(configured_settings) -> AsyncGenerator[AsyncClient, Any]:
    """
    HTTP client for an app whose settings report a configured endpoint.

    Telemetry is still built without a RemoteExport so nothing leaves the process.
    """
    telemetry = initialize_observability(configured_settings, None, set_global=False)
    async with build_client(configured_settings, telemetry) as ac:
        yield ac
    telemetry.shutdown()
