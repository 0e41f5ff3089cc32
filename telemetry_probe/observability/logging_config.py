"""
Logging pipeline configuration.

Every record written through stdlib logging fans out to two sinks:
1. CONSOLE: "[HH:MM:SS LVL] message" text, or JSON lines with LOG_FORMAT=json
2. OTLP: the OpenTelemetry LoggingHandler, which batches records to the remote endpoint

An optional file sink is added when LOG_FILE is set.

FAILURE MODE:
Export errors are raised inside the SDK's background worker, never at the call
site. They are reported on stderr through the self-log (see enable_self_log) and never
reach the OTLP handler.
"""

import logging
import sys
from typing import Any, Dict, List, Optional, TextIO

from opentelemetry import trace
from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
from pythonjsonlogger.json import JsonFormatter

from telemetry_probe.config import Settings

CONSOLE_FORMAT = "[%(asctime)s %(levelabbr)s] %(message)s"
CONSOLE_DATE_FORMAT = "%H:%M:%S"
SELF_LOG_FORMAT = "[Telemetry Internal Error] %(name)s: %(message)s"

LEVEL_ABBREVIATIONS = {
    "DEBUG": "DBG",
    "INFO": "INF",
    "WARNING": "WRN",
    "ERROR": "ERR",
    "CRITICAL": "FTL",
}

# SDK loggers whose records must never reach the OTLP handler
SDK_LOGGER_NAME = "opentelemetry"


class ConsoleFormatter(logging.Formatter):
    """Compact console format with three-letter level names (INF, WRN, ERR, FTL)."""

    def __init__(self) -> None:
        super().__init__(fmt=CONSOLE_FORMAT, datefmt=CONSOLE_DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        record.levelabbr = LEVEL_ABBREVIATIONS.get(record.levelname, record.levelname[:3])
        return super().format(record)


class CorrelationJsonFormatter(JsonFormatter):
    """
    JSON formatter that injects trace_id and span_id into every log.

    The trace_id links console output to the trace exported for the same request,
    so a line printed by /test-telemetry can be matched to its span in Tempo.
    """

    SENSITIVE_KEYS = ["api_token", "authorization", "password", "secret"]

    def __init__(self, service_name: str = "unknown", **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.service_name = service_name

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        span = trace.get_current_span()
        ctx = span.get_span_context()
        if ctx.is_valid:
            log_record["trace_id"] = format(ctx.trace_id, "032x")
            log_record["span_id"] = format(ctx.span_id, "016x")

        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["timestamp"] = self.formatTime(record, self.datefmt)
        log_record["service_name"] = self.service_name

        self.scrub_sensitive_data(log_record)

    def scrub_sensitive_data(self, log_record: Dict[str, Any]) -> Dict[str, Any]:
        """Mask credential fields passed through ``extra``, keeping the last 4 characters."""
        for key in self.SENSITIVE_KEYS:
            if key in log_record:
                if isinstance(log_record[key], str) and len(log_record[key]) > 4:
                    log_record[key] = f"***{log_record[key][-4:]}"
                else:
                    log_record[key] = "***REDACTED***"

        return log_record


def build_console_handler(settings: Settings, stream: Optional[TextIO] = None) -> logging.Handler:
    """Create the console sink in the configured format."""
    handler = logging.StreamHandler(stream or sys.stdout)
    if settings.log_format == "json":
        handler.setFormatter(
            CorrelationJsonFormatter(
                service_name=settings.service_name,
                fmt="%(timestamp)s %(level)s %(logger)s %(message)s",
                rename_fields={"message": "msg"},
            )
        )
    else:
        handler.setFormatter(ConsoleFormatter())
    return handler


def setup_logging(
    settings: Settings,
    logger_provider: Optional[LoggerProvider] = None,
    stream: Optional[TextIO] = None,
) -> List[logging.Handler]:
    """
    Attach the console and OTLP sinks to the root logger.

    Args:
        settings: Application settings (level, format, optional file)
        logger_provider: OTel logger provider backing the remote sink
        stream: Console stream, stdout by default

    Returns:
        The handlers that were added, so they can be detached on shutdown
    """
    handlers: List[logging.Handler] = [build_console_handler(settings, stream)]

    if logger_provider is not None:
        handlers.append(LoggingHandler(level=logging.NOTSET, logger_provider=logger_provider))

    if settings.log_file is not None:
        settings.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(settings.log_file)
        file_handler.setFormatter(ConsoleFormatter())
        handlers.append(file_handler)

    root_logger = logging.getLogger()
    root_logger.setLevel(settings.log_level)
    for handler in handlers:
        root_logger.addHandler(handler)

    # Silence noisy libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    root_logger.debug("Logging initialized for %s with %d sinks", settings.service_name, len(handlers))
    return handlers


def enable_self_log(stream: Optional[TextIO] = None) -> logging.Handler:
    """
    Route OpenTelemetry SDK warnings and errors to stderr only.

    The SDK reports failed exports through its own loggers. Those records are
    printed with a recognisable prefix and stop propagating, so they never
    reach the OTLP handler on the root logger.
    """
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(logging.WARNING)
    handler.setFormatter(logging.Formatter(SELF_LOG_FORMAT))

    sdk_logger = logging.getLogger(SDK_LOGGER_NAME)
    sdk_logger.addHandler(handler)
    sdk_logger.propagate = False
    return handler


def detach_handlers(handlers: List[logging.Handler], logger_name: Optional[str] = None) -> None:
    """Flush, close and remove handlers previously attached by setup_logging."""
    target = logging.getLogger(logger_name)
    for handler in handlers:
        handler.flush()
        target.removeHandler(handler)
        handler.close()
