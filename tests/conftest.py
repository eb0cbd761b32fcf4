from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

import pytest

_ANSI_RE = re.compile(r"\x1b\[[0-9;?]*[ -/]*[@-~]")

SECRET = "super-secret-value"
BASE_URL = "https://h/api"


def plain(s: str) -> str:
    return _ANSI_RE.sub("", s)


class FakeResponse:
    def __init__(self, status: int = 200, body: bytes = b"") -> None:
        self.status = status
        self._body = body
        self.closed = False

    def read(self) -> bytes:
        return self._body

    def close(self) -> None:
        self.closed = True


@dataclass
class FakeHttp:
    responses: list[Any] = field(default_factory=list)
    calls: list[dict[str, Any]] = field(default_factory=list)

    def reply(self, status: int = 200, body: bytes | str | dict | list = b"") -> FakeResponse:
        if isinstance(body, (dict, list)):
            body = json.dumps(body)
        if isinstance(body, str):
            body = body.encode("utf-8")
        resp = FakeResponse(status, body)
        self.responses.append(resp)
        return resp

    def fail(self, exc: BaseException) -> None:
        self.responses.append(exc)

    def urlopen(self, req, timeout=None):
        self.calls.append(
            {
                "method": req.get_method(),
                "url": req.full_url,
                "headers": dict(req.header_items()),
                "body": req.data,
                "timeout": timeout,
            }
        )
        if not self.responses:
            raise AssertionError(f"unexpected request: {req.get_method()} {req.full_url}")
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


@pytest.fixture
def fake_http(monkeypatch) -> FakeHttp:
    fake = FakeHttp()
    monkeypatch.setattr("cyberark_cli.api_client.urlopen", fake.urlopen)
    return fake


@pytest.fixture
def write_config(tmp_path: Path) -> Callable[..., Path]:
    def _write(
        doc: dict[str, Any] | None = None,
        *,
        raw: str | None = None,
        mode: int = 0o600,
        name: str = "cyberark_api.json",
    ) -> Path:
        if doc is None and raw is None:
            doc = {"api_secret": SECRET, "base_url": BASE_URL}
        path = tmp_path / name
        path.write_text(raw if raw is not None else json.dumps(doc), encoding="utf-8")
        os.chmod(path, mode)
        return path

    return _write


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch) -> None:
    monkeypatch.delenv("CYBERARK_CONFIG", raising=False)
    monkeypatch.delenv("CYBERARK_LOG_LEVEL", raising=False)
