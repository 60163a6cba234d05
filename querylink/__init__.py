"""Request cancellation, deduplication and abortable HTTP transport for query clients."""

from .cancel import CancelSignal
from .context import (
    CancelSignalEntry,
    Context,
    CorrelationIdEntry,
    HttpHeadersEntry,
    HttpResponseEntry,
    RequestExtensionsEntry,
    ResponseExtensionsEntry,
)
from .errors import (
    ContextError,
    ContextReadError,
    ContextWriteError,
    LinkError,
    ParseError,
    RequestCancelled,
    RequestFormatError,
    ServerError,
    TransportError,
)
from .keys import request_key
from .links import CancellationLink, CancellationRegistry, HttpLink, Link, NextLink
from .models import GraphQLError, Operation, OperationType, Request, Response
from .multipart import MultipartFile, extract_file_map

__all__ = [
    "CancelSignal",
    "CancelSignalEntry",
    "Context",
    "CorrelationIdEntry",
    "HttpHeadersEntry",
    "HttpResponseEntry",
    "RequestExtensionsEntry",
    "ResponseExtensionsEntry",
    "LinkError",
    "RequestFormatError",
    "TransportError",
    "ServerError",
    "ParseError",
    "ContextError",
    "ContextReadError",
    "ContextWriteError",
    "RequestCancelled",
    "request_key",
    "Link",
    "NextLink",
    "CancellationLink",
    "CancellationRegistry",
    "HttpLink",
    "GraphQLError",
    "Operation",
    "OperationType",
    "Request",
    "Response",
    "MultipartFile",
    "extract_file_map",
]
