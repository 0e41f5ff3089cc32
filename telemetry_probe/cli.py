"""CLI for the telemetry probe.

Provides commands to run the service and to check the Grafana configuration.
"""

from typing import Optional

import typer

from telemetry_probe import __version__
from telemetry_probe.config import get_settings
from telemetry_probe.console import console, print_configuration_check, print_remote_export
from telemetry_probe.credentials import resolve_remote_export
from telemetry_probe.runner import run

app = typer.Typer(
    name="telemetry-probe",
    help="Telemetry Probe - send test logs and traces to an OTLP backend",
    add_completion=False,
)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", "-h", help="Bind host (default: APP_HOST)"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Bind port (default: APP_PORT)"),
) -> None:
    """Run the web service until interrupted."""
    settings = get_settings()
    overrides = {}
    if host is not None:
        overrides["app_host"] = host
    if port is not None:
        overrides["app_port"] = port
    if overrides:
        settings = settings.model_copy(update=overrides)

    run(settings)


@app.command("check-config")
def check_config() -> None:
    """Print the configuration check without starting the server."""
    settings = get_settings()
    print_configuration_check(settings.grafana)
    print_remote_export(resolve_remote_export(settings.grafana))


@app.command()
def version() -> None:
    """Show version."""
    console.print(f"telemetry-probe version {__version__}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
