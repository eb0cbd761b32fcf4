from __future__ import annotations

from typing import Sequence

import typer

from ..cli_shared import PROG_NAME, OpError, UsageError
from ..config import Config

HELP_OPTION_NAMES = ["-h", "--help"]
WORKFLOW_CONTEXT_SETTINGS = {"help_option_names": HELP_OPTION_NAMES}


def workflow_config(ctx: typer.Context) -> Config:
    if isinstance(ctx.obj, Config):
        return ctx.obj
    raise UsageError("workflow invoked without a loaded config")


def run_workflow_app(
    app: typer.Typer,
    *,
    name: str,
    config: Config,
    args: Sequence[str],
) -> None:
    """
    Parse the workflow's own flags and run its command with ``config``.

    Flag errors raise click's usage exceptions, which the dispatcher renders
    with the workflow usage. ``--help`` prints the workflow help and returns.
    """
    command = typer.main.get_command(app)
    rc = command.main(
        args=list(args),
        prog_name=f"{PROG_NAME} {name}",
        standalone_mode=False,
        obj=config,
    )
    if isinstance(rc, int) and rc != 0:
        raise OpError(f"workflow {name!r} exited with status {rc}")
