import json
from pathlib import Path
import sys

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from ig_client import InstagramClient
from ig_session import FileSessionStore, Session
from ig_transport import RawResponse

IG_ENV_VARS = [
    "IG_SESSIONID",
    "IG_CSRFTOKEN",
    "IG_DS_USER_ID",
    "IG_USER_AGENT",
    "IG_PAGING_DELAY_MIN",
    "IG_PAGING_DELAY_MAX",
    "IG_PAGING_TIME_LIMIT",
    "IG_TIMEOUT",
    "IG_RETRY_ATTEMPTS",
    "IG_RETRY_DELAY",
    "IG_REQUESTS_PER_MINUTE",
    "IG_SESSION_CACHE_DIR",
    "HTTP_PROXY",
    "HTTPS_PROXY",
]


class FakeTransport:
    """Replays queued responses in order and records every request."""

    def __init__(self):
        self.responses = []
        self.calls = []

    def queue(self, body, status=200, headers=None):
        raw = body if isinstance(body, str) else json.dumps(body)
        self.responses.append(RawResponse(status_code=status, headers=headers or {}, body=raw))

    def send(self, method, url, headers, body=None):
        self.calls.append({"method": method, "url": url, "headers": dict(headers)})
        if not self.responses:
            raise AssertionError(f"Unexpected request: {url}")
        return self.responses.pop(0)


def connection(nodes, has_next=False, cursor=None, count=None):
    conn = {
        "edges": [{"node": node} for node in nodes],
        "page_info": {"has_next_page": has_next, "end_cursor": cursor},
    }
    if count is not None:
        conn["count"] = count
    return conn


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in IG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def client(tmp_path, transport, sleeps):
    return InstagramClient(
        config_file=str(tmp_path / "config.json"),
        transport=transport,
        session=Session(),
        session_store=FileSessionStore(str(tmp_path / "sessions")),
        sleep=sleeps.append,
    )
