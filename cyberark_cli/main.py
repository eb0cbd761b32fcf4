from __future__ import annotations

import sys
from typing import NoReturn

import click
import typer

from . import __version__
from .cli_shared import (
    CYBERARK_CONFIG,
    DEFAULT_CONFIG_PATH,
    PROG_NAME,
    HarnessError,
    OpError,
    _bootstrap_env,
    _eprint,
    _rich_error,
    configure_logging,
    logger,
)
from .config import load_config
from .registry import WorkflowNotFoundError, WorkflowRegistry
from .workflows import build_registry

_log = logger(__name__)


def _click_error_types(name: str) -> tuple[type[Exception], ...]:
    """The click exception class called ``name``, in every copy typer may raise.

    Some typer releases ship their own copy of click, so the class typer raises
    need not be the one the ``click`` package exports.
    """
    found: list[type[Exception]] = [getattr(click, name)]
    for cls in typer.BadParameter.__mro__:
        if cls.__name__ == name and cls not in found:
            found.append(cls)
    return tuple(found)


_CLICK_ERRORS = _click_error_types("ClickException")
_CLICK_USAGE_ERRORS = _click_error_types("UsageError")

app = typer.Typer(
    name=PROG_NAME,
    help="CyberArk API Command Harness",
    add_completion=False,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"{PROG_NAME} {__version__}")
        raise typer.Exit(code=0)


def usage_text(registry: WorkflowRegistry) -> str:
    lines = [
        "CyberArk API Command Harness",
        "",
        "Usage:",
        f"  {PROG_NAME} [--global-options] workflow_name [--workflow-options]",
        "",
        "Global Options:",
        f"  -c, --config PATH    Path to configuration file (default: {DEFAULT_CONFIG_PATH}; env: {CYBERARK_CONFIG})",
        "  -v, --verbose        Log config loading and API requests to stderr",
        "      --version        Show version and exit",
        "  -h, --help           Show this help message",
        "",
        "Workflows:",
    ]
    items = registry.items()
    width = max((len(name) for name, _ in items), default=0)
    for name, workflow in items:
        lines.append(f"  {name.ljust(width)}  {workflow.help()}")
    if not items:
        lines.append("  (none registered)")
    lines.extend(
        [
            "",
            "For workflow-specific help:",
            f"  {PROG_NAME} workflow_name --help",
        ]
    )
    return "\n".join(lines)


def _ctx_registry(ctx: typer.Context) -> WorkflowRegistry:
    obj = ctx.obj if isinstance(ctx.obj, dict) else {}
    registry = obj.get("registry")
    if isinstance(registry, WorkflowRegistry):
        return registry
    return build_registry()


def _fail_with_usage(message: str, registry: WorkflowRegistry) -> NoReturn:
    _rich_error(message)
    _eprint("")
    _eprint(usage_text(registry))
    raise typer.Exit(code=1)


@app.command(
    add_help_option=False,
    context_settings={
        "allow_extra_args": True,
        # Stop at the workflow name; everything after it belongs to the workflow.
        "allow_interspersed_args": False,
    },
)
def dispatch(
    ctx: typer.Context,
    config_path: str = typer.Option(
        DEFAULT_CONFIG_PATH,
        "--config",
        "-c",
        envvar=CYBERARK_CONFIG,
        help="Path to configuration file",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log to stderr at DEBUG level"),
    show_help: bool = typer.Option(False, "--help", "-h", help="Show this help message"),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    del version
    configure_logging(verbose=verbose)
    registry = _ctx_registry(ctx)

    if show_help:
        typer.echo(usage_text(registry))
        return

    args = list(ctx.args)
    if not args:
        _fail_with_usage("workflow name required", registry)
    name, workflow_args = args[0], args[1:]

    try:
        config = load_config(config_path)
    except OpError as e:
        _rich_error(f"Error loading config: {e}")
        raise typer.Exit(code=1)

    try:
        workflow = registry.lookup(name)
    except WorkflowNotFoundError as e:
        _fail_with_usage(str(e), registry)

    _log.debug("dispatching workflow %s with %d argument(s)", name, len(workflow_args))
    try:
        workflow.execute(config, workflow_args)
    except HarnessError as e:
        _rich_error(f"Error executing workflow: {e}")
        raise typer.Exit(code=1)


def main(argv: list[str] | None = None, *, registry: WorkflowRegistry | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    _bootstrap_env()
    if registry is None:
        registry = build_registry()
    try:
        result = app(
            args=argv,
            prog_name=PROG_NAME,
            standalone_mode=False,
            obj={"registry": registry},
        )
        if result is None:
            return 0
        return int(result)
    except typer.Exit as e:
        return int(e.exit_code)
    except _CLICK_ERRORS as e:
        # Malformed flags, global or per-workflow: click's message and usage line.
        _rich_error(e.format_message())
        if isinstance(e, _CLICK_USAGE_ERRORS) and e.ctx is not None:
            _eprint(e.ctx.get_usage())
            _eprint(f"Try '{e.ctx.command_path} -h' for help.")
        return int(e.exit_code)
    except HarnessError as e:
        _rich_error(str(e))
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
