from __future__ import annotations

import json
from concurrent.futures import Executor, Future

import pytest
import requests

from checkin_scanner.verification import VerificationClient, VerificationResponse, parse_response


class InlineExecutor(Executor):
    """Runs submitted callables immediately on the calling thread."""

    def submit(self, fn, /, *args, **kwargs):
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except BaseException as exc:
            future.set_exception(exc)
        return future


class DummyResponse:
    def __init__(self, content: bytes, status_code: int = 200):
        self.content = content
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error", response=self)


class DummySession:
    def __init__(self, response=None, error: Exception | None = None):
        self._response = response
        self._error = error
        self.calls = []
        self.closed = False

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self._error is not None:
            raise self._error
        return self._response

    def close(self) -> None:
        self.closed = True


ENDPOINT = "https://script.example.com/macros/s/abc/exec"


def make_client(session, endpoint=ENDPOINT) -> VerificationClient:
    return VerificationClient(endpoint, timeout=5.0, session=session, executor=InlineExecutor())


@pytest.mark.parametrize(
    "body, expected",
    [
        (b'{"status": "success", "priority": "yes"}', VerificationResponse(True, "yes")),
        (b'{"status": "success"}', VerificationResponse(True, "no")),
        (b'{"status": "success", "priority": "maybe"}', VerificationResponse(True, "maybe")),
        (b'{"status": "used", "priority": "yes"}', VerificationResponse(False, "yes")),
        ('{"status": "success"}', VerificationResponse(True, "no")),
    ],
)
def test_parse_response_reads_status_and_priority(body, expected):
    assert parse_response(body) == expected


@pytest.mark.parametrize(
    "body",
    [
        b"",
        None,
        b"<html>Moved</html>",
        b'["success"]',
        b'{"status": "success", "row": 12}',
        b'"success"',
    ],
)
def test_parse_response_rejects_unexpected_payloads(body):
    assert parse_response(body) == VerificationResponse.failed()


def test_verify_posts_form_encoded_code():
    body = json.dumps({"status": "success", "priority": "yes"}).encode("utf-8")
    session = DummySession(DummyResponse(body))
    client = make_client(session)

    result = client.verify("ABC123").result(timeout=1)

    assert result == VerificationResponse(True, "yes")
    url, kwargs = session.calls[0]
    assert url == ENDPOINT
    assert kwargs["data"] == {"qrCode": "ABC123"}
    assert kwargs["timeout"] == 5.0


def test_verify_without_endpoint_makes_no_request():
    session = DummySession(DummyResponse(b'{"status": "success"}'))
    client = make_client(session, endpoint=None)

    assert client.verify_sync("ABC123") == VerificationResponse.failed()
    assert session.calls == []


@pytest.mark.parametrize(
    "error",
    [
        requests.ConnectionError("unreachable"),
        requests.Timeout("slow"),
        requests.TooManyRedirects("loop"),
    ],
)
def test_transport_errors_resolve_as_failed(error):
    client = make_client(DummySession(error=error))

    assert client.verify("ZZZ999").result(timeout=1) == VerificationResponse.failed()


def test_http_error_status_resolves_as_failed():
    session = DummySession(DummyResponse(b'{"status": "success"}', status_code=500))
    client = make_client(session)

    assert client.verify_sync("ABC123") == VerificationResponse.failed()


def test_verify_uses_background_thread_by_default():
    body = b'{"status": "success"}'
    client = VerificationClient(ENDPOINT, session=DummySession(DummyResponse(body)))
    try:
        assert client.verify("ABC123").result(timeout=5) == VerificationResponse(True, "no")
    finally:
        client.close()


def test_close_closes_session():
    session = DummySession()
    client = make_client(session)

    client.close()

    assert session.closed
