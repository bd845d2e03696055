"""
Cookie/session state shared by every request a client sends.
"""

import hashlib
import json
import logging
import threading
import uuid
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Protocol

logger = logging.getLogger("ig_collections.session")

BASE_URL = "https://www.instagram.com"

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Linux; Android 8.1.0; motorola one Build/OPKS28.63-18-3; wv) "
    "AppleWebKit/537.36 (KHTML, like Gecko) Version/4.0 Chrome/70.0.3538.80 "
    "Mobile Safari/537.36 Instagram 72.0.0.21.98 Android (27/8.1.0; 320dpi; "
    "720x1362; motorola; motorola one; deen_sprout; qcom; pt_BR; 132081645"
)


def _set_cookie_values(headers: Mapping[str, Any]) -> list:
    raw = None
    for key, value in headers.items():
        if key.lower() == "set-cookie":
            raw = value
            break
    if raw is None:
        return []
    if isinstance(raw, str):
        return [raw]
    return list(raw)


def parse_set_cookies(values: Iterable[str]) -> Dict[str, str]:
    """Split Set-Cookie values into a name -> value map.

    A cookie flagged ``Secure`` wins over a plain cookie with the same name.
    """
    secure_cookies: Dict[str, str] = {}
    plain_cookies: Dict[str, str] = {}
    for cookie in values:
        parts = cookie.split(";")
        target = plain_cookies
        if any(part.strip() == "Secure" for part in parts[1:]):
            target = secure_cookies
        name, sep, value = parts[0].partition("=")
        name = name.strip()
        if not sep or not name:
            continue
        target[name] = value.strip()

    merged = dict(plain_cookies)
    merged.update(secure_cookies)
    return merged


class SessionStore(Protocol):
    def save(self, key: str, value: str) -> None:
        ...

    def load(self, key: str) -> Optional[str]:
        ...


class FileSessionStore:
    """One file per key under ``directory``."""

    def __init__(self, directory: str = ".ig_sessions"):
        self.directory = Path(directory)

    def path_for(self, key: str) -> Path:
        return self.directory / f"{key}.session"

    def save(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        self.path_for(key).write_text(value, encoding="utf-8")

    def load(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")


class Session:
    """
    Credential and cookie material for one logical client.

    ``ingest`` only bootstraps an anonymous session: once any cookie is
    known the session is treated as authoritative and responses no longer
    change it. Use ``restore`` to replace it explicitly.
    """

    def __init__(
        self,
        cookies: Optional[Dict[str, str]] = None,
        session_id: Optional[str] = None,
        csrf_token: Optional[str] = None,
        user_agent: Optional[str] = DEFAULT_USER_AGENT,
        base_url: str = BASE_URL,
    ):
        self.cookies: Dict[str, str] = dict(cookies or {})
        self.session_id = session_id or self.cookies.get("sessionid")
        self.csrf_token = csrf_token or self.cookies.get("csrftoken")
        self.user_agent = user_agent
        self.base_url = base_url
        self._lock = threading.Lock()

    def ingest(self, response_headers: Mapping[str, Any]) -> None:
        with self._lock:
            if self.cookies:
                return
            cookies = parse_set_cookies(_set_cookie_values(response_headers))
            if not cookies:
                return
            self.cookies.update(cookies)
            if "sessionid" in cookies:
                self.session_id = cookies["sessionid"]
            if "csrftoken" in cookies:
                self.csrf_token = cookies["csrftoken"]
            logger.debug("Session bootstrapped with cookies: %s", ", ".join(sorted(cookies)))

    def cookie_header(self) -> str:
        return "; ".join(f"{name}={value}" for name, value in self.cookies.items())

    def headers(self, extra: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        with self._lock:
            headers = {
                "cookie": self.cookie_header(),
                "referer": self.base_url + "/",
                "x-csrftoken": self.csrf_token or hashlib.md5(uuid.uuid4().bytes).hexdigest(),
            }
            if self.user_agent:
                headers["user-agent"] = self.user_agent
        if extra:
            headers.update(extra)
        return headers

    def restore(
        self,
        session_id: Optional[str],
        csrf_token: Optional[str],
        cookies: Optional[Dict[str, str]] = None,
    ) -> None:
        with self._lock:
            self.cookies = dict(cookies or {})
            if session_id:
                self.cookies.setdefault("sessionid", session_id)
            if csrf_token:
                self.cookies.setdefault("csrftoken", csrf_token)
            self.session_id = session_id
            self.csrf_token = csrf_token

    def cache_key(self) -> str:
        return hashlib.md5((self.session_id or "").encode("utf-8")).hexdigest()

    def to_blob(self) -> str:
        with self._lock:
            return json.dumps({
                "cookies": self.cookies,
                "session_id": self.session_id,
                "csrf_token": self.csrf_token,
            }, separators=(",", ":"))

    @classmethod
    def from_blob(cls, blob: str, user_agent: Optional[str] = DEFAULT_USER_AGENT) -> "Session":
        data = json.loads(blob)
        return cls(
            cookies=data.get("cookies") or {},
            session_id=data.get("session_id"),
            csrf_token=data.get("csrf_token"),
            user_agent=user_agent,
        )
