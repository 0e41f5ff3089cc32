"""Response models for the test endpoints. JSON keys are camelCase."""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def loki_query(service_name: str) -> str:
    return f'{{service_name="{service_name}"}}'


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LogResponse(CamelModel):
    message: str = "Logs written successfully!"
    timestamp: datetime = Field(default_factory=utc_now)
    grafana_configured: bool
    instructions: str


class TelemetryResponse(CamelModel):
    message: str = "Telemetry test sent!"
    trace_id: Optional[str] = None
    span_id: Optional[str] = None
    service_name: str
    timestamp: datetime = Field(default_factory=utc_now)
    instructions: str = "Check Grafana Explore → Tempo (for traces) or Loki (for logs)"


class ConnectionConfiguration(CamelModel):
    endpoint_configured: bool
    endpoint: str
    token_configured: bool
    token_length: int
    instance_id: str


class LogBatchSummary(CamelModel):
    sent: bool = True
    count: int = 3
    message: str = "Check Grafana in 30-60 seconds"


class GrafanaInstructions(CamelModel):
    step1: str = "Go to Grafana Cloud → Explore"
    step2: str = "Select Data Source: Loki"
    step3: str
    step4: str = "Time range: Last 5 minutes"


class ConnectionTestResponse(CamelModel):
    timestamp: datetime = Field(default_factory=utc_now)
    configuration: ConnectionConfiguration
    test_logs: LogBatchSummary = Field(default_factory=LogBatchSummary)
    grafana_instructions: GrafanaInstructions


class HealthResponse(CamelModel):
    status: str = "healthy"
    timestamp: datetime = Field(default_factory=utc_now)
    grafana_configured: bool
