from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Sequence

import typer

from ..api_client import ApiClient
from ..cli_shared import UsageError, _print_json
from ..config import Config
from ..registry import WorkflowRegistry
from .base import WORKFLOW_CONTEXT_SETTINGS, run_workflow_app, workflow_config

NAME = "request"
METHODS = ("GET", "POST", "PUT", "DELETE")
BODY_METHODS = ("POST", "PUT")

app = typer.Typer(name=NAME, add_completion=False)


def _load_payload(*, data: str, data_file: str) -> tuple[bool, Any]:
    if data.strip() and data_file.strip():
        raise UsageError("provide at most one of --data or --data-file")
    raw = data
    if data_file.strip():
        try:
            raw = Path(data_file).expanduser().read_text(encoding="utf-8")
        except OSError as e:
            raise UsageError(f"failed to read --data-file: {e}") from e
    if not raw.strip():
        return False, None
    try:
        return True, json.loads(raw)
    except ValueError as e:
        raise UsageError(f"invalid JSON request body: {e}") from e


def _print_body(raw: bytes) -> None:
    if not raw:
        return
    text = raw.decode("utf-8", errors="replace")
    try:
        parsed = json.loads(text)
    except ValueError:
        typer.echo(text)
        return
    _print_json(parsed)


@app.command(
    help="Send a raw request to the API and print the response body.",
    epilog=(
        "Examples: cyberark request GET Safes | "
        "cyberark request POST Accounts --data-file account.json | "
        "cyberark request DELETE Accounts/12_3"
    ),
    context_settings=WORKFLOW_CONTEXT_SETTINGS,
)
def request(
    ctx: typer.Context,
    method: str = typer.Argument(..., help="HTTP method: GET, POST, PUT or DELETE"),
    endpoint: str = typer.Argument(..., help="Endpoint relative to base_url"),
    data: str = typer.Option("", "--data", help="JSON request body for POST/PUT"),
    data_file: str = typer.Option("", "--data-file", help="Path to a JSON request body"),
) -> None:
    verb = method.strip().upper()
    if verb not in METHODS:
        raise UsageError(f"unsupported method {method!r} (expected one of {', '.join(METHODS)})")
    has_payload, payload = _load_payload(data=data, data_file=data_file)
    if has_payload and verb not in BODY_METHODS:
        raise UsageError(f"{verb} does not take a request body")

    client = ApiClient(workflow_config(ctx))
    if verb == "GET":
        _print_body(client.get(endpoint))
    elif verb == "POST":
        _print_body(client.post(endpoint, payload if has_payload else {}))
    elif verb == "PUT":
        _print_body(client.put(endpoint, payload if has_payload else {}))
    else:
        client.delete(endpoint)
        typer.echo(f"deleted {endpoint}")


class RequestWorkflow:
    def execute(self, config: Config, args: Sequence[str]) -> None:
        run_workflow_app(app, name=NAME, config=config, args=args)

    def help(self) -> str:
        return "Send a raw GET/POST/PUT/DELETE request"


def register(registry: WorkflowRegistry) -> None:
    registry.register(NAME, RequestWorkflow())
