"""Loading and validation of the harness JSON config file.

The file holds the API secret, so it must be readable by its owner only
(mode 0600). Windows has no Unix permission bits; there the check is skipped
and a debug line records that it was relaxed.
"""

from __future__ import annotations

import json
import os
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .cli_shared import OpError, logger

DEFAULT_TIMEOUT_SECONDS = 30
REQUIRED_MODE = 0o600
REDACTED = "[REDACTED]"
PERMISSION_CHECK_ENFORCED = os.name != "nt"

_log = logger(__name__)


class ConfigError(OpError):
    pass


class ConfigNotFoundError(ConfigError):
    pass


class ConfigPermissionError(ConfigError):
    def __init__(self, mode: int) -> None:
        super().__init__(f"config file must have 0600 permissions, has {mode:o}")
        self.mode = mode


class ConfigParseError(ConfigError):
    pass


class ConfigValidationError(ConfigError):
    def __init__(self, field_name: str) -> None:
        super().__init__(f"{field_name} is required in config file")
        self.field = field_name


@dataclass(frozen=True)
class Config:
    api_secret: str = field(repr=False)
    base_url: str
    username: str = ""
    timeout: int = DEFAULT_TIMEOUT_SECONDS

    def redacted(self) -> dict[str, Any]:
        return {
            "api_secret": REDACTED,
            "base_url": self.base_url,
            "username": self.username,
            "timeout": self.timeout,
        }


def expand_config_path(path: str | os.PathLike[str]) -> Path:
    try:
        return Path(path).expanduser()
    except RuntimeError as e:
        raise ConfigError(f"failed to get home directory: {e}") from e


def check_permissions(path: Path) -> int:
    try:
        st = os.stat(path)
    except FileNotFoundError as e:
        raise ConfigNotFoundError(f"config file not found: {path}") from e
    except OSError as e:
        raise ConfigError(f"failed to stat config file {path}: {e}") from e
    if not stat.S_ISREG(st.st_mode):
        raise ConfigError(f"config path is not a regular file: {path}")

    mode = stat.S_IMODE(st.st_mode) & 0o777
    if not PERMISSION_CHECK_ENFORCED:
        _log.debug("skipping 0600 permission check on this platform (mode %o)", mode)
        return mode
    if mode != REQUIRED_MODE:
        raise ConfigPermissionError(mode)
    return mode


def _string_field(doc: dict[str, Any], key: str) -> str:
    val = doc.get(key)
    if val is None:
        return ""
    if not isinstance(val, str):
        raise ConfigParseError(
            f"failed to parse config JSON: {key} must be a string, got {type(val).__name__}"
        )
    return val


def _int_field(doc: dict[str, Any], key: str, default: int) -> int:
    val = doc.get(key)
    if val is None:
        return default
    # bool is an int subclass; JSON true is not a timeout.
    if isinstance(val, bool) or not isinstance(val, int):
        raise ConfigParseError(
            f"failed to parse config JSON: {key} must be an integer, got {type(val).__name__}"
        )
    return val


def parse_config(raw: str) -> Config:
    try:
        doc = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigParseError(f"failed to parse config JSON: {e}") from e
    if not isinstance(doc, dict):
        raise ConfigParseError("failed to parse config JSON: expected JSON object")

    config = Config(
        api_secret=_string_field(doc, "api_secret"),
        base_url=_string_field(doc, "base_url"),
        username=_string_field(doc, "username"),
        timeout=_int_field(doc, "timeout", DEFAULT_TIMEOUT_SECONDS),
    )
    if not config.api_secret:
        raise ConfigValidationError("api_secret")
    if not config.base_url:
        raise ConfigValidationError("base_url")
    return config


def load_config(path: str | os.PathLike[str]) -> Config:
    resolved = expand_config_path(path)
    _log.debug("loading config from %s", resolved)
    check_permissions(resolved)
    try:
        raw = resolved.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ConfigParseError(f"failed to parse config JSON: {e}") from e
    except OSError as e:
        raise ConfigError(f"failed to read config file: {e}") from e
    return parse_config(raw)
