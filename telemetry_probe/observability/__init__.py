"""
Observability Package

Centralized setup for the three signals this service emits:
1. LOGS: stdlib logging → console + OTLP (Loki)
2. TRACES: OpenTelemetry spans → OTLP (Tempo)
3. METRICS: FastAPI/requests instrumentation → OTLP (Mimir)

FAILURE MODE:
If the OTLP endpoint or token is missing, nothing is exported and logs
only reach the console. The application keeps running either way.
"""

from telemetry_probe.observability.instrumentation import (
    Telemetry,
    get_trace_context,
    initialize_observability,
)

__all__ = ["Telemetry", "get_trace_context", "initialize_observability"]
