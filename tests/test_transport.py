from types import SimpleNamespace
from unittest.mock import Mock

import pytest
import requests

from ig_errors import TransportError
from ig_transport import HttpTransport, response_headers


class RawHeaders:
    def __init__(self, cookies):
        self.cookies = cookies

    def getlist(self, name):
        return self.cookies if name == "Set-Cookie" else []


def fake_response(status, text="", headers=None, cookies=None):
    return SimpleNamespace(
        status_code=status,
        text=text,
        headers=headers or {},
        raw=SimpleNamespace(headers=RawHeaders(cookies or [])),
    )


def test_retries_retryable_status_then_succeeds():
    session = Mock()
    session.request.side_effect = [fake_response(503), fake_response(200, '{"ok": true}')]
    sleeps = []
    transport = HttpTransport(retry_attempts=3, retry_delay=2, session=session, sleep=sleeps.append)

    response = transport.send("GET", "https://www.instagram.com/x/", {"a": "b"})

    assert response.status_code == 200
    assert response.body == '{"ok": true}'
    assert sleeps == [2]
    assert session.request.call_count == 2
    _, kwargs = session.request.call_args
    assert kwargs["headers"] == {"a": "b"}
    assert kwargs["timeout"] == 30


def test_last_attempt_returns_retryable_status():
    session = Mock()
    session.request.side_effect = [fake_response(429), fake_response(429)]
    transport = HttpTransport(retry_attempts=2, retry_delay=1, session=session, sleep=lambda _: None)

    response = transport.send("GET", "https://www.instagram.com/x/", {})

    assert response.status_code == 429


def test_request_errors_raise_transport_error_after_final_attempt():
    session = Mock()
    session.request.side_effect = requests.ConnectionError("connection reset")
    sleeps = []
    transport = HttpTransport(retry_attempts=3, retry_delay=4, session=session, sleep=sleeps.append)

    with pytest.raises(TransportError, match="connection reset"):
        transport.send("GET", "https://www.instagram.com/x/", {})

    assert session.request.call_count == 3
    assert sleeps == [4, 4]


def test_set_cookie_values_stay_separate():
    response = fake_response(
        200,
        headers={"Content-Type": "application/json", "set-cookie": "a=1, b=2; Secure"},
        cookies=["a=1", "b=2; Secure"],
    )

    headers = response_headers(response)

    assert headers["Set-Cookie"] == ["a=1", "b=2; Secure"]
    assert "set-cookie" not in headers
    assert headers["Content-Type"] == "application/json"


def test_proxies_are_applied_to_session():
    session = Mock()
    HttpTransport(session=session, proxies={"https": "http://proxy:8080"})
    assert session.proxies == {"https": "http://proxy:8080"}


def test_rate_limit_spaces_requests(monkeypatch):
    sleeps = []
    transport = HttpTransport(requests_per_minute=60, request_jitter_ratio=0, session=Mock(), sleep=sleeps.append)
    monkeypatch.setattr("ig_transport.time.time", lambda: 100.5)
    transport._last_request_ts = 100.0

    transport.rate_limit_check()

    assert sleeps[0] == pytest.approx(0.5)
