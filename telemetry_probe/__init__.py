"""
Telemetry Probe
A small FastAPI service that emits test logs, traces and metrics to verify an OTLP backend.
"""

__version__ = "1.0.0"
