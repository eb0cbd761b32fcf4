"""Thin HTTP wrapper around the CyberArk REST API.

Every request carries the raw API secret in ``Authorization`` (no scheme) and
``Content-Type: application/json``. Anything outside 2xx is an error. There
are no retries; a workflow that wants them implements them itself.
"""

from __future__ import annotations

import contextlib
import http.client
import json
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from .cli_shared import OpError, logger
from .config import DEFAULT_TIMEOUT_SECONDS, Config

_log = logger(__name__)


class ApiError(OpError):
    pass


class RequestError(ApiError):
    pass


class TransportError(ApiError):
    pass


class SerializationError(ApiError):
    pass


class ApiStatusError(ApiError):
    def __init__(self, status: int, body: bytes) -> None:
        self.status = status
        self.body = body
        text = body.decode("utf-8", errors="replace")
        super().__init__(f"API error (status {status}): {text}")


def _encode_payload(payload: Any) -> bytes:
    try:
        return json.dumps(payload, separators=(",", ":")).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise SerializationError(f"failed to marshal payload: {e}") from e


def _is_sendable_header_value(value: str) -> bool:
    if "\r" in value or "\n" in value:
        return False
    try:
        value.encode("latin-1")
    except UnicodeEncodeError:
        return False
    return True


def decode_json(raw: bytes, *, label: str) -> Any:
    text = raw.decode("utf-8", errors="replace")
    try:
        return json.loads(text)
    except ValueError as e:
        raise SerializationError(f"invalid JSON from {label}: {e}") from e


class ApiClient:
    def __init__(self, config: Config) -> None:
        self._config = config
        self.timeout = config.timeout if config.timeout > 0 else DEFAULT_TIMEOUT_SECONDS

    @property
    def config(self) -> Config:
        return self._config

    def url_for(self, endpoint: str) -> str:
        return f"{self._config.base_url}/{endpoint}"

    def get(self, endpoint: str) -> bytes:
        return self._request("GET", endpoint)

    def post(self, endpoint: str, payload: Any) -> bytes:
        return self._request("POST", endpoint, body=_encode_payload(payload))

    def put(self, endpoint: str, payload: Any) -> bytes:
        return self._request("PUT", endpoint, body=_encode_payload(payload))

    def delete(self, endpoint: str) -> None:
        self._request("DELETE", endpoint, best_effort_error_body=True)

    def _build_request(self, method: str, url: str, body: bytes | None) -> Request:
        try:
            req = Request(url, data=body, method=method)
        except ValueError as e:
            raise RequestError(f"failed to create request: {e}") from e
        if not _is_sendable_header_value(self._config.api_secret):
            raise RequestError(
                "failed to create request: Authorization header value is not a valid HTTP header"
            )
        req.add_header("Authorization", self._config.api_secret)
        req.add_header("Content-Type", "application/json")
        return req

    def _request(
        self,
        method: str,
        endpoint: str,
        *,
        body: bytes | None = None,
        best_effort_error_body: bool = False,
    ) -> bytes:
        url = self.url_for(endpoint)
        req = self._build_request(method, url, body)
        _log.debug("%s %s", method, url)
        try:
            resp = urlopen(req, timeout=self.timeout)
        except HTTPError as e:
            # Non-2xx: the error doubles as the response and must be closed too.
            resp = e
        except ValueError as e:
            # http.client rejects header and URL values it cannot put on the wire.
            raise RequestError(f"failed to create request: {e}") from e
        except (URLError, OSError, http.client.HTTPException) as e:
            raise TransportError(f"request failed: {e}") from e

        with contextlib.closing(resp):
            status = int(getattr(resp, "status", None) or getattr(resp, "code", 0) or 0)
            ok = 200 <= status < 300
            try:
                data = resp.read()
            except (OSError, http.client.HTTPException) as e:
                if ok or not best_effort_error_body:
                    raise TransportError(f"failed to read response: {e}") from e
                data = b""

        _log.debug("%s %s -> %d", method, url, status)
        if not ok:
            raise ApiStatusError(status, data)
        return data
