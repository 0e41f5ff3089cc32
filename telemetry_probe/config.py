"""
Configuration management for the telemetry probe.

Settings come from (highest priority first):
1. Environment variables (and a local .env file)
2. The YAML config file (config.yml by default), for the Grafana endpoint/token only
3. Defaults

The Grafana variables accept both the double-underscore section form
(GRAFANA__OTLPENDPOINT) and the snake_case form (GRAFANA__OTLP_ENDPOINT).
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

import yaml
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_INSTANCE_ID = "1391357"
VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
VALID_LOG_FORMATS = ["console", "json"]


class GrafanaSettings(BaseSettings):
    """Remote OTLP endpoint settings (Grafana Cloud or any OTLP/HTTP collector)."""

    otlp_endpoint: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("GRAFANA__OTLPENDPOINT", "GRAFANA__OTLP_ENDPOINT"),
        description="OTLP/HTTP base endpoint",
    )
    api_token: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("GRAFANA__APITOKEN", "GRAFANA__API_TOKEN"),
        description="Access policy token (glc_...) or pre-encoded credentials",
    )
    instance_id: str = Field(
        default=DEFAULT_INSTANCE_ID,
        validation_alias=AliasChoices("GRAFANA__INSTANCEID", "GRAFANA__INSTANCE_ID"),
        description="Grafana Cloud instance id, used with glc_ tokens",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("otlp_endpoint", "api_token", mode="before")
    @classmethod
    def blank_as_unset(cls, v: Optional[str]) -> Optional[str]:
        """Treat empty strings the same as a missing value."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def endpoint_configured(self) -> bool:
        return bool(self.otlp_endpoint)

    @property
    def token_configured(self) -> bool:
        return bool(self.api_token)

    @property
    def token_length(self) -> int:
        return len(self.api_token) if self.api_token else 0


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Service identity (OpenTelemetry resource attributes)
    service_name: str = Field(default="my-app", description="service.name")
    service_namespace: str = Field(default="my-application-group", description="service.namespace")
    service_version: str = Field(default="1.0.0", description="service.version")
    app_env: str = Field(default="production", description="deployment.environment")

    # Server
    app_host: str = Field(default="0.0.0.0", description="Bind host")
    app_port: int = Field(default=8080, description="Bind port")

    # Logging
    log_level: str = Field(default="INFO", description="Root logging level")
    log_format: str = Field(default="console", description="Console output: console or json")
    log_file: Optional[Path] = Field(default=None, description="Optional file sink path")

    # Connection test
    flush_timeout_seconds: float = Field(default=5.0, gt=0, description="Upper bound for a forced flush")
    connection_test_min_wait_seconds: float = Field(
        default=1.0, ge=0, description="Minimum time /test-connection takes to answer"
    )

    config_file: Path = Field(default=Path("config.yml"), description="YAML fallback for Grafana keys")

    grafana: GrafanaSettings = Field(default_factory=GrafanaSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        if v.upper() not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level. Must be one of: {VALID_LOG_LEVELS}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        if v.lower() not in VALID_LOG_FORMATS:
            raise ValueError(f"Invalid log format. Must be one of: {VALID_LOG_FORMATS}")
        return v.lower()

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env.lower() == "production"


def load_config_file(path: Path) -> dict:
    """
    Read the ``grafana`` section of a YAML config file.

    A missing file yields an empty dict. Keys are the snake_case names
    used by GrafanaSettings (otlp_endpoint, api_token).
    """
    if not path.is_file():
        return {}

    with open(path, "r") as f:
        config = yaml.safe_load(f) or {}

    section = config.get("grafana") or {}
    if not isinstance(section, dict):
        raise ValueError(f"'grafana' section in {path} must be a mapping")
    return section


def apply_file_fallback(settings: Settings) -> Settings:
    """
    Fill an unset endpoint or token from the config file.

    Environment values always win; the file is only consulted for keys
    the environment left empty.
    """
    grafana = settings.grafana
    if grafana.endpoint_configured and grafana.token_configured:
        return settings

    section = load_config_file(settings.config_file)
    updates = {}
    if not grafana.endpoint_configured and section.get("otlp_endpoint"):
        updates["otlp_endpoint"] = str(section["otlp_endpoint"])
    if not grafana.token_configured and section.get("api_token"):
        updates["api_token"] = str(section["api_token"])

    if updates:
        logger.debug("Grafana settings taken from %s: %s", settings.config_file, sorted(updates))
        settings.grafana = grafana.model_copy(update=updates)
    return settings


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return apply_file_fallback(Settings())
