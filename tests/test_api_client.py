from __future__ import annotations

import io
import json
from email.message import Message
from urllib.error import HTTPError, URLError

import pytest

from cyberark_cli.api_client import (
    ApiClient,
    ApiError,
    ApiStatusError,
    RequestError,
    SerializationError,
    TransportError,
    decode_json,
)
from cyberark_cli.cli_shared import OpError
from cyberark_cli.config import Config

from conftest import BASE_URL, SECRET


class _BrokenBody(io.BytesIO):
    def read(self, *args, **kwargs):
        raise OSError("connection reset by peer")


def _config(**overrides) -> Config:
    values = {"api_secret": SECRET, "base_url": BASE_URL}
    values.update(overrides)
    return Config(**values)


def _http_error(status: int, body: bytes | io.BytesIO) -> HTTPError:
    fp = body if isinstance(body, io.BytesIO) else io.BytesIO(body)
    return HTTPError(f"{BASE_URL}/x", status, "error", Message(), fp)


def test_get_sets_raw_secret_and_json_headers(fake_http) -> None:
    resp = fake_http.reply(200, b'{"ok": true}')

    body = ApiClient(_config()).get("Accounts")

    assert body == b'{"ok": true}'
    call = fake_http.calls[0]
    assert call["method"] == "GET"
    assert call["url"] == "https://h/api/Accounts"
    assert call["headers"]["Authorization"] == SECRET
    assert call["headers"]["Content-type"] == "application/json"
    assert call["body"] is None
    assert resp.closed is True


def test_url_is_plain_concatenation() -> None:
    client = ApiClient(_config(base_url="https://h/api/"))

    assert client.url_for("Accounts?limit=1") == "https://h/api//Accounts?limit=1"
    assert client.url_for("a b") == "https://h/api//a b"
    assert ApiClient(_config()).url_for("a b") == "https://h/api/a b"


@pytest.mark.parametrize("timeout, expected", [(12, 12), (30, 30), (0, 30), (-5, 30)])
def test_timeout_comes_from_config_with_default(fake_http, timeout: int, expected: int) -> None:
    fake_http.reply(200)

    client = ApiClient(_config(timeout=timeout))
    client.get("x")

    assert client.timeout == expected
    assert fake_http.calls[0]["timeout"] == expected


def test_post_and_put_send_compact_json(fake_http) -> None:
    fake_http.reply(201, b'{"id": "1"}')
    fake_http.reply(200, b"")
    client = ApiClient(_config())

    assert client.post("Accounts", {"name": "a", "tags": [1, 2]}) == b'{"id": "1"}'
    assert client.put("Accounts/1", None) == b""

    post, put = fake_http.calls
    assert post["method"] == "POST"
    assert json.loads(post["body"]) == {"name": "a", "tags": [1, 2]}
    assert post["body"] == b'{"name":"a","tags":[1,2]}'
    assert put["method"] == "PUT"
    assert put["body"] == b"null"
    assert put["headers"]["Authorization"] == SECRET


def test_unserializable_payload_is_a_serialization_error(fake_http) -> None:
    client = ApiClient(_config())

    with pytest.raises(SerializationError, match="failed to marshal payload"):
        client.post("Accounts", {"when": object()})
    with pytest.raises(SerializationError):
        client.put("Accounts/1", {1, 2})

    assert fake_http.calls == []


def test_404_carries_status_and_body(fake_http) -> None:
    err = _http_error(404, b"not found")
    fake_http.fail(err)

    with pytest.raises(ApiStatusError) as exc_info:
        ApiClient(_config()).get("Accounts/missing")

    assert exc_info.value.status == 404
    assert exc_info.value.body == b"not found"
    assert "404" in str(exc_info.value)
    assert "not found" in str(exc_info.value)
    assert err.fp.closed


def test_non_2xx_response_without_http_error_is_still_an_error(fake_http) -> None:
    resp = fake_http.reply(302, b"moved")

    with pytest.raises(ApiStatusError, match=r"status 302"):
        ApiClient(_config()).get("x")

    assert resp.closed is True


def test_204_without_body_is_success(fake_http) -> None:
    first = fake_http.reply(204)
    second = fake_http.reply(204)
    client = ApiClient(_config())

    assert client.get("x") == b""
    assert client.delete("Accounts/1") is None
    assert first.closed and second.closed
    assert fake_http.calls[1]["method"] == "DELETE"


def test_delete_error_drains_body_best_effort(fake_http) -> None:
    err = _http_error(500, _BrokenBody())
    fake_http.fail(err)

    with pytest.raises(ApiStatusError) as exc_info:
        ApiClient(_config()).delete("Accounts/1")

    assert exc_info.value.status == 500
    assert exc_info.value.body == b""


def test_delete_error_reports_body(fake_http) -> None:
    fake_http.fail(_http_error(403, b"forbidden"))

    with pytest.raises(ApiStatusError, match="forbidden"):
        ApiClient(_config()).delete("Accounts/1")


def test_read_failure_on_get_is_a_transport_error(fake_http) -> None:
    fake_http.fail(_http_error(500, _BrokenBody()))

    with pytest.raises(TransportError, match="failed to read response"):
        ApiClient(_config()).get("x")


@pytest.mark.parametrize(
    "exc",
    [URLError("name resolution failed"), TimeoutError("timed out"), ConnectionRefusedError()],
)
def test_network_failures_are_transport_errors(fake_http, exc: BaseException) -> None:
    fake_http.fail(exc)

    with pytest.raises(TransportError, match="request failed"):
        ApiClient(_config()).get("x")


def test_bad_base_url_is_a_request_error(fake_http) -> None:
    client = ApiClient(_config(base_url="vault.example.com"))

    with pytest.raises(RequestError, match="failed to create request"):
        client.get("Accounts")

    assert fake_http.calls == []


@pytest.mark.parametrize("secret", ["s\u00e9cret\u2192x", "abc\ndef", "abc\r\nX-Injected: 1"])
def test_unsendable_secret_is_a_request_error_without_the_value(fake_http, secret: str) -> None:
    client = ApiClient(_config(api_secret=secret))

    with pytest.raises(RequestError, match="Authorization header value is not a valid HTTP header") as exc_info:
        client.get("Safes")

    assert secret not in str(exc_info.value)
    assert "abc" not in str(exc_info.value)
    assert fake_http.calls == []


def test_latin1_secret_is_sent_as_is(fake_http) -> None:
    fake_http.reply(200)

    ApiClient(_config(api_secret="s\u00e9cret")).get("Safes")

    assert fake_http.calls[0]["headers"]["Authorization"] == "s\u00e9cret"


def test_value_error_from_the_wire_layer_is_a_request_error(fake_http) -> None:
    fake_http.fail(ValueError("URL can't contain control characters"))

    with pytest.raises(RequestError, match="failed to create request: URL can't contain control characters"):
        ApiClient(_config()).get("Safes")


def test_api_errors_share_the_operational_base() -> None:
    for cls in (RequestError, TransportError, SerializationError):
        assert issubclass(cls, ApiError)
        assert issubclass(cls, OpError)
    assert isinstance(ApiStatusError(500, b""), OpError)


def test_decode_json() -> None:
    assert decode_json(b'{"value": []}', label="accounts") == {"value": []}
    with pytest.raises(SerializationError, match="invalid JSON from accounts"):
        decode_json(b"<html>", label="accounts")
