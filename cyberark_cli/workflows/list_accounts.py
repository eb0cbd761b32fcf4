from __future__ import annotations

from typing import Any, Sequence
from urllib.parse import quote, urlencode

import typer

from ..api_client import ApiClient, SerializationError, decode_json
from ..cli_shared import _print_json
from ..config import Config
from ..registry import WorkflowRegistry
from .base import WORKFLOW_CONTEXT_SETTINGS, run_workflow_app, workflow_config

NAME = "list-accounts"
DEFAULT_LIMIT = 50

app = typer.Typer(name=NAME, add_completion=False)


def accounts_endpoint(*, limit: int, safe: str = "", search: str = "") -> str:
    query: dict[str, str] = {"limit": str(limit)}
    if search:
        query["search"] = search
    if safe:
        query["filter"] = f"safeName eq {safe}"
    return f"Accounts?{urlencode(query, quote_via=quote)}"


def _accounts_from_doc(doc: Any) -> list[dict[str, Any]]:
    if not isinstance(doc, dict):
        raise SerializationError("invalid accounts response: expected JSON object")
    value = doc.get("value") or []
    if not isinstance(value, list):
        raise SerializationError("invalid accounts response: 'value' must be a list")
    return [a for a in value if isinstance(a, dict)]


def _account_line(account: dict[str, Any]) -> str:
    account_id = str(account.get("id") or "-")
    user = str(account.get("userName") or "")
    address = str(account.get("address") or "")
    target = f"{user}@{address}" if user and address else (user or address or "-")
    safe = str(account.get("safeName") or "")
    return f"  {account_id}  {target}  [{safe}]" if safe else f"  {account_id}  {target}"


@app.command(
    help="List accounts from CyberArk.",
    epilog=(
        "Examples: cyberark list-accounts | "
        "cyberark list-accounts --safe ProductionSafe | "
        "cyberark list-accounts --safe DevSafe --limit 100"
    ),
    context_settings=WORKFLOW_CONTEXT_SETTINGS,
)
def list_accounts(
    ctx: typer.Context,
    safe: str = typer.Option("", "--safe", help="Filter accounts by safe name"),
    limit: int = typer.Option(
        DEFAULT_LIMIT,
        "--limit",
        min=1,
        help="Maximum number of accounts to return",
    ),
    search: str = typer.Option("", "--search", help="Free-text search across account properties"),
    json_output: bool = typer.Option(False, "--json", help="Print the raw JSON response"),
) -> None:
    config = workflow_config(ctx)
    client = ApiClient(config)
    endpoint = accounts_endpoint(limit=limit, safe=safe, search=search)

    if json_output:
        doc = decode_json(client.get(endpoint), label="accounts response")
        _accounts_from_doc(doc)
        _print_json(doc)
        return

    typer.echo("Listing CyberArk accounts...")
    typer.echo(f"Base URL: {config.base_url}")
    if safe:
        typer.echo(f"Filtering by safe: {safe}")
    typer.echo(f"Limit: {limit}")
    typer.echo("")

    doc = decode_json(client.get(endpoint), label="accounts response")
    accounts = _accounts_from_doc(doc)
    for account in accounts:
        typer.echo(_account_line(account))
    total = doc.get("count")
    if isinstance(total, int) and not isinstance(total, bool) and total != len(accounts):
        typer.echo(f"{len(accounts)} of {total} account(s)")
    else:
        typer.echo(f"{len(accounts)} account(s)")


class ListAccountsWorkflow:
    def execute(self, config: Config, args: Sequence[str]) -> None:
        run_workflow_app(app, name=NAME, config=config, args=args)

    def help(self) -> str:
        return "List accounts from CyberArk"


def register(registry: WorkflowRegistry) -> None:
    registry.register(NAME, ListAccountsWorkflow())
