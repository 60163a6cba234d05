"""Immutable request/response context with a closed set of entry kinds."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Type, TypeVar

from querylink.cancel import CancelSignal
from querylink.errors import ContextReadError, ContextWriteError


@dataclass(frozen=True)
class CancelSignalEntry:
    """Carries the cancellation signal downstream to the transport."""

    signal: CancelSignal


@dataclass(frozen=True)
class CorrelationIdEntry:
    """Groups requests that belong to the same logical query instance."""

    correlation_id: str


@dataclass(frozen=True)
class HttpHeadersEntry:
    """Outbound headers merged over the transport defaults."""

    headers: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class HttpResponseEntry:
    """Inbound HTTP metadata attached to a classified response."""

    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class RequestExtensionsEntry:
    extensions: Mapping[str, Any]


@dataclass(frozen=True)
class ResponseExtensionsEntry:
    extensions: Optional[Mapping[str, Any]]


ENTRY_TYPES: tuple[type, ...] = (
    CancelSignalEntry,
    CorrelationIdEntry,
    HttpHeadersEntry,
    HttpResponseEntry,
    RequestExtensionsEntry,
    ResponseExtensionsEntry,
)

E = TypeVar("E")


class Context:
    """Entry kind -> entry mapping.

    Lookups return ``None`` when an entry is absent. A stored value that is not
    an instance of its kind is a configuration error and raises
    :class:`ContextReadError`.
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: Optional[Mapping[type, Any]] = None) -> None:
        self._entries: Mapping[type, Any] = MappingProxyType(dict(entries or {}))

    @classmethod
    def from_entries(cls, entries: Iterable[Any]) -> "Context":
        context = cls()
        for entry in entries:
            context = context.with_entry(entry)
        return context

    def entry(self, kind: Type[E]) -> Optional[E]:
        if kind not in ENTRY_TYPES:
            raise ContextReadError(f"Unknown context entry kind {kind!r}")
        value = self._entries.get(kind)
        if value is None:
            return None
        if not isinstance(value, kind):
            raise ContextReadError(
                f"Context entry for {kind.__name__} has unexpected type {type(value).__name__}"
            )
        return value

    def with_entry(self, entry: Any) -> "Context":
        kind = type(entry)
        if kind not in ENTRY_TYPES:
            raise ContextWriteError(f"Cannot store {kind.__name__} in a request context")
        entries: Dict[type, Any] = dict(self._entries)
        entries[kind] = entry
        return Context(entries)

    def without(self, kind: type) -> "Context":
        entries = {k: v for k, v in self._entries.items() if k is not kind}
        return Context(entries)

    # Typed accessors -----------------------------------------------------

    def cancel_signal(self) -> Optional[CancelSignal]:
        entry = self.entry(CancelSignalEntry)
        if entry is None:
            return None
        if not isinstance(entry.signal, CancelSignal):
            raise ContextReadError("CancelSignalEntry.signal must be a CancelSignal")
        return entry.signal

    def correlation_id(self) -> Optional[str]:
        entry = self.entry(CorrelationIdEntry)
        if entry is None:
            return None
        if not isinstance(entry.correlation_id, str):
            raise ContextReadError("CorrelationIdEntry.correlation_id must be a string")
        return entry.correlation_id

    def http_headers(self) -> Dict[str, str]:
        entry = self.entry(HttpHeadersEntry)
        if entry is None:
            return {}
        headers = entry.headers
        if not isinstance(headers, Mapping) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in headers.items()
        ):
            raise ContextReadError("HttpHeadersEntry.headers must map strings to strings")
        return dict(headers)

    def http_response(self) -> Optional[HttpResponseEntry]:
        return self.entry(HttpResponseEntry)

    def request_extensions(self) -> Optional[Mapping[str, Any]]:
        entry = self.entry(RequestExtensionsEntry)
        return entry.extensions if entry is not None else None

    def response_extensions(self) -> Optional[Mapping[str, Any]]:
        entry = self.entry(ResponseExtensionsEntry)
        return entry.extensions if entry is not None else None

    def __contains__(self, kind: object) -> bool:
        return kind in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Context):
            return NotImplemented
        return dict(self._entries) == dict(other._entries)

    def __repr__(self) -> str:
        names = ", ".join(kind.__name__ for kind in self._entries)
        return f"Context({names})"


__all__ = [
    "Context",
    "ENTRY_TYPES",
    "CancelSignalEntry",
    "CorrelationIdEntry",
    "HttpHeadersEntry",
    "HttpResponseEntry",
    "RequestExtensionsEntry",
    "ResponseExtensionsEntry",
]
