"""
HTTP transport on top of requests.Session.
"""

import logging
import random
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Union

import requests

from ig_errors import TransportError

logger = logging.getLogger("ig_collections.transport")

RETRYABLE_STATUSES = {429, 500, 502, 503, 504}

HeaderValue = Union[str, list]


@dataclass
class RawResponse:
    status_code: int
    headers: Dict[str, HeaderValue] = field(default_factory=dict)
    body: Any = ""


def response_headers(response: requests.Response) -> Dict[str, HeaderValue]:
    """Copy response headers, keeping each Set-Cookie value separate."""
    headers: Dict[str, HeaderValue] = dict(response.headers)
    raw_headers = getattr(response.raw, "headers", None)
    if raw_headers is not None and hasattr(raw_headers, "getlist"):
        cookies = raw_headers.getlist("Set-Cookie")
        if cookies:
            for key in [k for k in headers if k.lower() == "set-cookie"]:
                del headers[key]
            headers["Set-Cookie"] = list(cookies)
    return headers


class HttpTransport:
    def __init__(
        self,
        timeout: float = 30,
        retry_attempts: int = 3,
        retry_delay: float = 5,
        requests_per_minute: float = 0,
        request_jitter_ratio: float = 0.2,
        proxies: Optional[Dict[str, str]] = None,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.timeout = timeout
        self.retry_attempts = max(1, retry_attempts)
        self.retry_delay = retry_delay
        self.requests_per_minute = requests_per_minute
        self.request_jitter_ratio = request_jitter_ratio
        self.session = session or requests.Session()
        if proxies:
            self.session.proxies = proxies
        self._sleep = sleep
        self._last_request_ts = 0.0

    def rate_limit_check(self) -> None:
        if not self.requests_per_minute or self.requests_per_minute <= 0:
            return
        min_interval = 60.0 / float(self.requests_per_minute)
        now = time.time()
        elapsed = now - self._last_request_ts
        if elapsed < min_interval:
            self._sleep(min_interval - elapsed)
        # Add jitter to avoid fixed intervals
        jitter = random.uniform(0, min_interval * max(0.0, min(self.request_jitter_ratio, 1.0)))
        self._sleep(jitter)
        self._last_request_ts = time.time()

    def send(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        body: Optional[Any] = None,
    ) -> RawResponse:
        last_error: Optional[Exception] = None
        for attempt in range(1, self.retry_attempts + 1):
            self.rate_limit_check()
            try:
                response = self.session.request(method, url, headers=headers, data=body, timeout=self.timeout)
            except requests.RequestException as exc:
                last_error = exc
                if attempt < self.retry_attempts:
                    logger.warning("Request error, retrying... (%s)", exc)
                    self._sleep(self.retry_delay)
                continue

            if response.status_code in RETRYABLE_STATUSES and attempt < self.retry_attempts:
                logger.warning("HTTP %s, retrying...", response.status_code)
                self._sleep(self.retry_delay * attempt)
                continue

            return RawResponse(
                status_code=response.status_code,
                headers=response_headers(response),
                body=response.text,
            )

        raise TransportError(f"Request to {url} failed after {self.retry_attempts} attempts: {last_error}")
