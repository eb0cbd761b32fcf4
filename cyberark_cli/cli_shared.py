from __future__ import annotations

import functools
import json
import logging
import os
import sys
from typing import Any

from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape


class HarnessError(Exception):
    pass


class UsageError(HarnessError):
    pass


class OpError(HarnessError):
    pass


PROG_NAME = "cyberark"
CYBERARK_CONFIG = "CYBERARK_CONFIG"
CYBERARK_LOG_LEVEL = "CYBERARK_LOG_LEVEL"
DEFAULT_CONFIG_PATH = "~/.cyberark_api"
LOGGER_NAME = "cyberark_cli"

_ERROR_CONSOLE = Console(stderr=True)


def _eprint(msg: str) -> None:
    print(msg, file=sys.stderr)


def _rich_error(msg: str) -> None:
    _ERROR_CONSOLE.print(f"[bold red]error:[/bold red] {escape(msg)}", soft_wrap=True)


def _env_or_none(*names: str) -> str | None:
    for n in names:
        v = (os.environ.get(n) or "").strip()
        if v:
            return v
    return None


def _bootstrap_env() -> None:
    # Discover and load .env without overriding already-exported values.
    load_dotenv()


def _print_json(obj: Any) -> None:
    sys.stdout.write(json.dumps(obj, indent=2, sort_keys=True) + "\n")


def logger(name: str | None = None) -> logging.Logger:
    if not name or name == LOGGER_NAME:
        return logging.getLogger(LOGGER_NAME)
    if name.startswith(LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


@functools.cache
def _install_log_handler() -> logging.Handler:
    handler = RichHandler(console=_ERROR_CONSOLE, show_path=False, markup=False)
    handler.setFormatter(logging.Formatter("%(name)s - %(message)s"))
    root = logging.getLogger(LOGGER_NAME)
    root.addHandler(handler)
    root.propagate = False
    return handler


def configure_logging(*, verbose: bool = False) -> int:
    """
    Attach the stderr log handler to the package logger and set its level.

    ``--verbose`` wins; otherwise the level name comes from the
    CYBERARK_LOG_LEVEL environment variable, defaulting to WARNING.
    """
    _install_log_handler()
    if verbose:
        level = logging.DEBUG
    else:
        level_name = (_env_or_none(CYBERARK_LOG_LEVEL) or "").upper()
        level = logging.getLevelNamesMapping().get(level_name, logging.WARNING)
    logging.getLogger(LOGGER_NAME).setLevel(level)
    return level
