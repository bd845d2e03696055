"""
Turns an HTTP status plus body into a tagged outcome, and outcomes into errors.
"""

import json
from dataclasses import dataclass
from typing import Any, Union

from ig_errors import (
    ForbiddenError,
    NotFoundError,
    ProtocolError,
    RateLimitError,
    ResponseError,
)

HTTP_OK = 200
HTTP_FORBIDDEN = 403
HTTP_NOT_FOUND = 404
HTTP_TOO_MANY_REQUESTS = 429


@dataclass(frozen=True)
class Success:
    payload: dict


@dataclass(frozen=True)
class NotFound:
    pass


@dataclass(frozen=True)
class Forbidden:
    """The collection exists but cannot be read.

    No HTTP status maps here; ``PageShape.decode`` produces it for private accounts.
    """

    reason: str = ""


@dataclass(frozen=True)
class Invalid:
    reason: str


@dataclass(frozen=True)
class ServerError:
    status: int
    body: str


Outcome = Union[Success, NotFound, Forbidden, Invalid, ServerError]


def error_body(body: Any) -> str:
    if isinstance(body, str):
        return body
    if isinstance(body, dict):
        return "".join(f" {key} => {value};" for key, value in body.items())
    return "Unknown body format"


def decode_body(raw: Any) -> Any:
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    if not isinstance(raw, str):
        return raw
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def classify(status: int, body: Any, require_ok_status: bool = False) -> Outcome:
    decoded = decode_body(body)
    if status == HTTP_NOT_FOUND:
        return NotFound()
    if status != HTTP_OK:
        return ServerError(status, error_body(decoded))
    if not isinstance(decoded, dict):
        return Invalid("Response decoding failed. Returned data corrupted or this library outdated.")
    if require_ok_status and decoded.get("status") != "ok":
        return Invalid(decoded.get("message") or f"Response status is {decoded.get('status')!r}.")
    return Success(decoded)


def unwrap(outcome: Outcome, not_found_message: str = "Resource does not exist.") -> dict:
    """Return the payload of a ``Success`` or raise the matching error."""
    if isinstance(outcome, Success):
        return outcome.payload
    if isinstance(outcome, NotFound):
        raise NotFoundError(not_found_message, status_code=HTTP_NOT_FOUND)
    if isinstance(outcome, Forbidden):
        raise ForbiddenError(outcome.reason or "Collection is not accessible.", status_code=HTTP_FORBIDDEN)
    if isinstance(outcome, Invalid):
        raise ProtocolError(outcome.reason, status_code=HTTP_OK)
    message = f"Response code is {outcome.status}. Body: {outcome.body} Something went wrong."
    if outcome.status == HTTP_TOO_MANY_REQUESTS:
        raise RateLimitError(message, status_code=outcome.status, body=outcome.body)
    raise ResponseError(message, status_code=outcome.status, body=outcome.body)
