"""
OpenTelemetry Instrumentation Setup

This module builds the three SDK providers and wires the auto-instrumentation for:
- FastAPI (inbound HTTP request spans and metrics)
- requests (outbound HTTP-client spans)
- logging (trace ids injected into every LogRecord)
- system metrics (process and runtime gauges: CPU, memory, GC, threads)

ARCHITECTURAL PATTERN: The "Observability Facade"
Every provider is created here and handed back in a single Telemetry object.
Routes only ever see Telemetry.tracer and stdlib logging.

DEGRADED MODE:
With no RemoteExport (endpoint or token missing) the providers are still created,
so spans get real ids and instrumentation keeps working, but nothing is
exported. Logs then only reach the console.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from fastapi import FastAPI
from opentelemetry import metrics, trace
from opentelemetry._logs import set_logger_provider
from opentelemetry.exporter.otlp.proto.http._log_exporter import OTLPLogExporter
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.instrumentation.requests import RequestsInstrumentor
from opentelemetry.instrumentation.system_metrics import SystemMetricsInstrumentor
from opentelemetry.sdk._logs import LoggerProvider
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import (
    DEPLOYMENT_ENVIRONMENT,
    SERVICE_NAME,
    SERVICE_NAMESPACE,
    SERVICE_VERSION,
    Resource,
)
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from telemetry_probe.config import Settings
from telemetry_probe.credentials import RemoteExport, apply_otlp_environment
from telemetry_probe.observability.logging_config import (
    SDK_LOGGER_NAME,
    detach_handlers,
    enable_self_log,
    setup_logging,
)

logger = logging.getLogger(__name__)

METRIC_EXPORT_INTERVAL_MS = 10000


def create_resource(settings: Settings) -> Resource:
    """
    Creates an OpenTelemetry Resource with service metadata.

    These attributes are attached to every span, metric and log record, and are
    what Grafana filters on, e.g. {service_name="my-app"} in Loki.
    """
    return Resource.create({
        SERVICE_NAME: settings.service_name,
        SERVICE_NAMESPACE: settings.service_namespace,
        SERVICE_VERSION: settings.service_version,
        DEPLOYMENT_ENVIRONMENT: settings.app_env,
    })


def setup_tracing(resource: Resource, remote: Optional[RemoteExport]) -> TracerProvider:
    """
    Create the tracer provider, exporting over OTLP/HTTP when a remote target exists.

    The span exporter reads endpoint, headers and protocol from the
    OTEL_EXPORTER_OTLP_* variables set by apply_otlp_environment.
    """
    provider = TracerProvider(resource=resource)

    if remote is not None:
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter()))
        logger.info("Tracing initialized: %s -> %s", resource.attributes.get(SERVICE_NAME), remote.endpoint)

    return provider


def setup_metrics(
    resource: Resource,
    remote: Optional[RemoteExport],
    export_interval_ms: int = METRIC_EXPORT_INTERVAL_MS,
) -> MeterProvider:
    """Create the meter provider with a periodic OTLP reader when a remote target exists."""
    readers = []
    if remote is not None:
        readers.append(
            PeriodicExportingMetricReader(OTLPMetricExporter(), export_interval_millis=export_interval_ms)
        )
        logger.info("Metrics initialized: %s -> %s", resource.attributes.get(SERVICE_NAME), remote.endpoint)

    return MeterProvider(resource=resource, metric_readers=readers)


def setup_runtime_metrics(meter_provider: MeterProvider) -> SystemMetricsInstrumentor:
    """Register process and runtime gauges on meter_provider."""
    instrumentor = SystemMetricsInstrumentor()
    instrumentor.instrument(meter_provider=meter_provider)
    return instrumentor


def setup_log_export(resource: Resource, remote: Optional[RemoteExport]) -> Optional[LoggerProvider]:
    """Create the OTLP log pipeline, or None in console-only mode."""
    if remote is None:
        return None

    provider = LoggerProvider(resource=resource)
    provider.add_log_record_processor(BatchLogRecordProcessor(OTLPLogExporter()))
    return provider


@dataclass
class Telemetry:
    """Process-wide telemetry handles created once at startup."""

    settings: Settings
    remote: Optional[RemoteExport]
    tracer_provider: TracerProvider
    meter_provider: MeterProvider
    logger_provider: Optional[LoggerProvider]
    handlers: List[logging.Handler] = field(default_factory=list)
    self_log_handler: Optional[logging.Handler] = None

    @property
    def remote_enabled(self) -> bool:
        return self.remote is not None

    @property
    def tracer(self) -> trace.Tracer:
        return self.tracer_provider.get_tracer(self.settings.service_name)

    def instrument_app(self, app: FastAPI) -> None:
        """Attach inbound HTTP tracing and metrics to a FastAPI app."""
        FastAPIInstrumentor.instrument_app(
            app,
            tracer_provider=self.tracer_provider,
            meter_provider=self.meter_provider,
        )

    def flush(self, timeout_seconds: float) -> bool:
        """
        Force pending spans and log records out, bounded by timeout_seconds.

        Returns:
            True if every pipeline drained within the timeout
        """
        timeout_millis = int(timeout_seconds * 1000)
        flushed = self.tracer_provider.force_flush(timeout_millis)
        if self.logger_provider is not None:
            flushed = self.logger_provider.force_flush(timeout_millis) and flushed
        return flushed

    def shutdown(self) -> None:
        """Flush and close every pipeline, then detach the logging handlers."""
        detach_handlers(self.handlers)
        self.handlers = []
        if self.logger_provider is not None:
            self.logger_provider.shutdown()
        self.meter_provider.shutdown()
        self.tracer_provider.shutdown()
        if self.self_log_handler is not None:
            detach_handlers([self.self_log_handler], SDK_LOGGER_NAME)
            self.self_log_handler = None


def initialize_observability(
    settings: Settings,
    remote: Optional[RemoteExport],
    set_global: bool = True,
) -> Telemetry:
    """
    One-line setup for all observability.

    Args:
        settings: Application settings
        remote: Derived export target, or None for console-only logging
        set_global: Register the providers as the process-wide OTel defaults and
            enable library auto-instrumentation. Tests pass False.

    Returns:
        Telemetry holding the providers and the attached log handlers
    """
    self_log_handler = enable_self_log()

    if remote is not None:
        apply_otlp_environment(remote)

    resource = create_resource(settings)
    logger_provider = setup_log_export(resource, remote)
    handlers = setup_logging(settings, logger_provider)

    tracer_provider = setup_tracing(resource, remote)
    meter_provider = setup_metrics(resource, remote)

    if set_global:
        trace.set_tracer_provider(tracer_provider)
        metrics.set_meter_provider(meter_provider)
        if logger_provider is not None:
            set_logger_provider(logger_provider)

        RequestsInstrumentor().instrument(tracer_provider=tracer_provider, meter_provider=meter_provider)
        LoggingInstrumentor().instrument(tracer_provider=tracer_provider, set_logging_format=False)
        setup_runtime_metrics(meter_provider)

    telemetry = Telemetry(
        settings=settings,
        remote=remote,
        tracer_provider=tracer_provider,
        meter_provider=meter_provider,
        logger_provider=logger_provider,
        handlers=handlers,
        self_log_handler=self_log_handler,
    )
    logger.info("Observability initialized for %s (remote export: %s)", settings.service_name, telemetry.remote_enabled)
    return telemetry


def get_trace_context() -> dict:
    """
    Extract current trace ID and span ID for correlation.

    Returns:
        Dict with trace_id and span_id (or empty if no active trace)
    """
    span = trace.get_current_span()
    ctx = span.get_span_context()

    if ctx.is_valid:
        return {
            "trace_id": format(ctx.trace_id, "032x"),
            "span_id": format(ctx.span_id, "016x"),
        }
    return {}
