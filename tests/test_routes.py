"""Tests for the HTTP test endpoints."""

import re
import time
from datetime import datetime, timedelta

import pytest
from httpx import AsyncClient


def parse_utc(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    assert parsed.utcoffset() == timedelta(0)
    return parsed


class TestRootAndIndex:
    """Test the redirect and landing page."""

    @pytest.mark.asyncio
    async def test_root_redirects_to_index(self, client: AsyncClient) -> None:
        """Test that / redirects to /Index."""
        response = await client.get("/")

        assert response.status_code == 302
        assert response.headers["location"] == "/Index"

    @pytest.mark.asyncio
    async def test_index_lists_endpoints(self, client: AsyncClient) -> None:
        """Test the landing page renders with the endpoint list."""
        response = await client.get("/Index")

        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]
        assert "/test-connection" in response.text
        assert "console only" in response.text


class TestLogEndpoint:
    """Test /log."""

    @pytest.mark.asyncio
    async def test_log_response(self, client: AsyncClient) -> None:
        """Test the response body shape."""
        response = await client.get("/log")

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Logs written successfully!"
        assert data["grafanaConfigured"] is False
        assert '{service_name="my-app"}' in data["instructions"]
        parse_utc(data["timestamp"])

    @pytest.mark.asyncio
    async def test_log_writes_three_levels(self, client: AsyncClient, caplog) -> None:
        """Test one info, one warning and one error record are written."""
        with caplog.at_level("INFO", logger="telemetry_probe.api.routes"):
            await client.get("/log")

        levels = [r.levelname for r in caplog.records if r.name == "telemetry_probe.api.routes"]
        assert levels == ["INFO", "WARNING", "ERROR"]

    @pytest.mark.asyncio
    async def test_log_reports_configured_endpoint(self, configured_client: AsyncClient) -> None:
        """Test grafanaConfigured follows the endpoint setting."""
        response = await configured_client.get("/log")

        assert response.json()["grafanaConfigured"] is True


class TestTelemetryEndpoint:
    """Test /test-telemetry."""

    @pytest.mark.asyncio
    async def test_telemetry_response(self, client: AsyncClient) -> None:
        """Test trace and span ids are returned as hex strings."""
        response = await client.get("/test-telemetry")

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Telemetry test sent!"
        assert data["serviceName"] == "my-app"
        assert re.fullmatch(r"[0-9a-f]{32}", data["traceId"])
        assert re.fullmatch(r"[0-9a-f]{16}", data["spanId"])
        parse_utc(data["timestamp"])

    @pytest.mark.asyncio
    async def test_span_is_recorded(self, client: AsyncClient, span_exporter) -> None:
        """Test the TestOperation span carries two tags and one event."""
        response = await client.get("/test-telemetry")
        data = response.json()

        spans = [s for s in span_exporter.get_finished_spans() if s.name == "TestOperation"]
        assert len(spans) == 1
        span = spans[0]
        assert span.attributes["test.type"] == "manual"
        parse_utc(span.attributes["test.timestamp"])
        assert [e.name for e in span.events] == ["Test event from my-app"]
        assert format(span.context.trace_id, "032x") == data["traceId"]
        assert format(span.context.span_id, "016x") == data["spanId"]


class TestConnectionEndpoint:
    """Test /test-connection."""

    @pytest.mark.asyncio
    async def test_unconfigured_connection_report(self, client: AsyncClient) -> None:
        """Test the configuration block when nothing is set."""
        response = await client.get("/test-connection")

        assert response.status_code == 200
        data = response.json()
        parse_utc(data["timestamp"])
        assert data["configuration"] == {
            "endpointConfigured": False,
            "endpoint": "NOT SET",
            "tokenConfigured": False,
            "tokenLength": 0,
            "instanceId": "1391357",
        }
        assert data["testLogs"] == {"sent": True, "count": 3, "message": "Check Grafana in 30-60 seconds"}
        assert data["grafanaInstructions"]["step2"] == "Select Data Source: Loki"
        assert data["grafanaInstructions"]["step3"] == 'Query: {service_name="my-app"}'

    @pytest.mark.asyncio
    async def test_configured_connection_report(self, configured_client: AsyncClient) -> None:
        """Test the configuration block reports the endpoint and token length."""
        data = (await configured_client.get("/test-connection")).json()

        assert data["configuration"]["endpointConfigured"] is True
        assert data["configuration"]["endpoint"] == "https://otlp-gateway.example.net/otlp"
        assert data["configuration"]["tokenConfigured"] is True
        assert data["configuration"]["tokenLength"] == len("glc_test_token_value")
        assert data["configuration"]["instanceId"] == "424242"

    @pytest.mark.asyncio
    async def test_waits_at_least_one_second(self, client: AsyncClient) -> None:
        """Test the response is not returned before one second has elapsed."""
        started = time.monotonic()
        response = await client.get("/test-connection")
        elapsed = time.monotonic() - started

        assert response.status_code == 200
        assert elapsed >= 1.0

    @pytest.mark.asyncio
    async def test_timestamp_is_taken_at_receipt(self, client: AsyncClient) -> None:
        """Test the timestamp precedes the wait."""
        before = datetime.now().astimezone()
        data = (await client.get("/test-connection")).json()

        assert parse_utc(data["timestamp"]) - before < timedelta(seconds=0.9)


class TestHealthEndpoint:
    """Test /health."""

    @pytest.mark.asyncio
    async def test_health_unconfigured(self, client: AsyncClient) -> None:
        """Test health is reported without remote configuration."""
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["grafanaConfigured"] is False
        parse_utc(data["timestamp"])

    @pytest.mark.asyncio
    async def test_health_configured(self, configured_client: AsyncClient) -> None:
        """Test health status does not depend on configuration."""
        data = (await configured_client.get("/health")).json()

        assert data["status"] == "healthy"
        assert data["grafanaConfigured"] is True


class TestErrorHandling:
    """Test the global exception handler."""

    @pytest.mark.asyncio
    async def test_unhandled_exception_returns_json_500(self, settings, telemetry) -> None:
        """Test an exception in a handler is answered with a JSON 500."""
        from httpx import ASGITransport

        from telemetry_probe.api.main import create_app

        app = create_app(settings, telemetry)

        @app.get("/boom")
        async def boom():
            raise RuntimeError("boom")

        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            response = await ac.get("/boom")

        assert response.status_code == 500
        assert response.json()["error"] == "Internal server error"
