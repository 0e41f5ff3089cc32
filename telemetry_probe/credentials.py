"""
Credential derivation for OTLP export.

Grafana Cloud access policy tokens (glc_...) must be sent as HTTP Basic auth
with the instance id as the username. Anything else is assumed to be an
already-encoded credential and is passed through untouched.
"""

import base64
import logging
import os
from dataclasses import dataclass
from typing import MutableMapping, Optional
from urllib.parse import quote

from telemetry_probe.config import GrafanaSettings

logger = logging.getLogger(__name__)

CLOUD_TOKEN_PREFIX = "glc_"
OTLP_PROTOCOL = "http/protobuf"

OTEL_ENDPOINT_VAR = "OTEL_EXPORTER_OTLP_ENDPOINT"
OTEL_HEADERS_VAR = "OTEL_EXPORTER_OTLP_HEADERS"
OTEL_PROTOCOL_VAR = "OTEL_EXPORTER_OTLP_PROTOCOL"


@dataclass(frozen=True)
class RemoteExport:
    """Remote export target, computed once at startup."""

    endpoint: str
    auth_header: str
    cloud_token: bool

    @property
    def authorization(self) -> str:
        return f"Basic {self.auth_header}"

    @property
    def header_preview(self) -> str:
        """First 20 characters of the header value, for console output."""
        return f"{self.auth_header[:20]}..."


def is_cloud_token(token: str) -> bool:
    return token.startswith(CLOUD_TOKEN_PREFIX)


def derive_auth_header(token: str, instance_id: str) -> str:
    """
    Build the Basic auth credential for a token.

    Args:
        token: API token from the environment or config file
        instance_id: Grafana Cloud instance id

    Returns:
        base64("<instance_id>:<token>") for glc_ tokens, the token itself otherwise
    """
    if is_cloud_token(token):
        credentials = f"{instance_id}:{token}"
        return base64.b64encode(credentials.encode("utf-8")).decode("ascii")
    return token


def resolve_remote_export(grafana: GrafanaSettings) -> Optional[RemoteExport]:
    """
    Derive the remote export target, or None when endpoint or token is missing.

    A missing value is not an error: the caller falls back to console-only logging.
    """
    if not grafana.otlp_endpoint or not grafana.api_token:
        return None

    return RemoteExport(
        endpoint=grafana.otlp_endpoint,
        auth_header=derive_auth_header(grafana.api_token, grafana.instance_id),
        cloud_token=is_cloud_token(grafana.api_token),
    )


def apply_otlp_environment(
    remote: RemoteExport,
    environ: Optional[MutableMapping[str, str]] = None,
) -> None:
    """
    Export the OTEL_EXPORTER_OTLP_* variables the SDK exporters read at construction.

    The header value is percent-encoded: the SDK parses OTEL_EXPORTER_OTLP_HEADERS
    as comma-separated key=value pairs and URL-decodes each value.
    """
    if environ is None:
        environ = os.environ

    environ[OTEL_ENDPOINT_VAR] = remote.endpoint
    environ[OTEL_HEADERS_VAR] = f"Authorization={quote(remote.authorization)}"
    environ[OTEL_PROTOCOL_VAR] = OTLP_PROTOCOL
    logger.debug("OTLP environment configured for %s", remote.endpoint)
