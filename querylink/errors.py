"""Error taxonomy raised by querylink links."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    import httpx

    from querylink.models import Request, Response

ERROR_CODES = [
    "request_format",
    "transport",
    "server",
    "parse",
    "context_read",
    "context_write",
    "cancelled",
]


class LinkError(Exception):
    """Base error for every failure surfaced by a link."""

    code: str = "link"


class RequestFormatError(LinkError):
    """Raised when a request cannot be serialized; never reaches the network."""

    code = "request_format"

    def __init__(self, message: str, *, request: "Request") -> None:
        super().__init__(message)
        self.request = request


class TransportError(LinkError):
    """Raised when the network call fails for reasons other than cancellation."""

    code = "transport"

    def __init__(self, message: str, *, request: "Request") -> None:
        super().__init__(message)
        self.request = request


class ServerError(LinkError):
    """Raised for non-2xx statuses or bodies carrying neither data nor errors."""

    code = "server"

    def __init__(
        self,
        message: str,
        *,
        response: "httpx.Response",
        parsed_response: Optional["Response"] = None,
    ) -> None:
        super().__init__(message)
        self.response = response
        self.parsed_response = parsed_response

    @property
    def status_code(self) -> int:
        return self.response.status_code


class ParseError(LinkError):
    """Raised when a response body cannot be decoded."""

    code = "parse"

    def __init__(self, message: str, *, response: "httpx.Response") -> None:
        super().__init__(message)
        self.response = response


class ContextError(LinkError):
    """A context entry had an unexpected shape."""

    code = "context"


class ContextReadError(ContextError):
    code = "context_read"


class ContextWriteError(ContextError):
    code = "context_write"


class RequestCancelled(LinkError):
    """Cancellation outcome; absorbed by links and never emitted by a stream."""

    code = "cancelled"

    def __init__(self, message: str = "request cancelled", *, request: Optional["Request"] = None) -> None:
        super().__init__(message)
        self.request = request


__all__ = [
    "ERROR_CODES",
    "LinkError",
    "RequestFormatError",
    "TransportError",
    "ServerError",
    "ParseError",
    "ContextError",
    "ContextReadError",
    "ContextWriteError",
    "RequestCancelled",
]
