"""
Error types raised by the Instagram collection client.
"""

from typing import Optional


class InstagramError(Exception):
    """Base error for everything the client surfaces to callers."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(InstagramError):
    pass


class ForbiddenError(InstagramError):
    """The collection exists but cannot be read (e.g. a private account)."""


class ValidationError(InstagramError, ValueError):
    """The caller supplied an inconsistent request."""


class ProtocolError(InstagramError):
    """The payload could not be decoded or is missing required fields."""


class TransportError(InstagramError):
    pass


class ResponseError(InstagramError):
    def __init__(self, message: str, status_code: int, body: str = ""):
        super().__init__(message, status_code=status_code)
        self.body = body


class RateLimitError(ResponseError):
    pass


class PagingInterrupted(InstagramError):
    """A multi-page walk was stopped before its next round-trip."""


class PagingCancelled(PagingInterrupted):
    pass


class DeadlineExceeded(PagingInterrupted):
    pass
