from __future__ import annotations

from typing import Sequence

import typer

from ..api_client import ApiClient
from ..config import REDACTED, Config
from ..registry import WorkflowRegistry
from .base import WORKFLOW_CONTEXT_SETTINGS, run_workflow_app, workflow_config

NAME = "verify"
DEFAULT_PROBE_ENDPOINT = "Safes?limit=1"

app = typer.Typer(name=NAME, add_completion=False)


@app.command(
    help="Verify CyberArk API connectivity.",
    epilog="Examples: cyberark verify | cyberark verify --probe",
    context_settings=WORKFLOW_CONTEXT_SETTINGS,
)
def verify(
    ctx: typer.Context,
    probe: bool = typer.Option(False, "--probe", help="Issue a GET against the API"),
    endpoint: str = typer.Option(
        DEFAULT_PROBE_ENDPOINT,
        "--endpoint",
        help="Endpoint used by --probe, relative to base_url",
    ),
) -> None:
    config = workflow_config(ctx)
    client = ApiClient(config)

    typer.echo("Verifying CyberArk API connectivity...")
    typer.echo(f"Base URL: {config.base_url}")
    if config.username:
        typer.echo(f"Username: {config.username}")
    typer.echo(f"API Secret: {REDACTED}")
    typer.echo(f"Timeout: {client.timeout}s")
    typer.echo("")
    typer.echo("✓ Configuration loaded successfully")
    typer.echo("✓ API credentials present")

    if not probe:
        typer.echo("")
        typer.echo("Note: no network probe was made (pass --probe to call the API)")
        return

    client.get(endpoint)
    typer.echo(f"✓ API reachable: GET {client.url_for(endpoint)}")


class VerifyWorkflow:
    def execute(self, config: Config, args: Sequence[str]) -> None:
        run_workflow_app(app, name=NAME, config=config, args=args)

    def help(self) -> str:
        return "Verify API connectivity"


def register(registry: WorkflowRegistry) -> None:
    registry.register(NAME, VerifyWorkflow())
