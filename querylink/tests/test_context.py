import pytest

from querylink.cancel import CancelSignal
from querylink.context import (
    CancelSignalEntry,
    Context,
    CorrelationIdEntry,
    HttpHeadersEntry,
    HttpResponseEntry,
)
from querylink.errors import ContextReadError, ContextWriteError


def test_absent_entries_return_none():
    context = Context()

    assert context.cancel_signal() is None
    assert context.correlation_id() is None
    assert context.http_response() is None
    assert context.http_headers() == {}


def test_with_entry_returns_new_context():
    signal = CancelSignal()
    base = Context()
    updated = base.with_entry(CancelSignalEntry(signal))

    assert base.cancel_signal() is None
    assert updated.cancel_signal() is signal


def test_with_entry_replaces_same_kind():
    context = Context.from_entries([CorrelationIdEntry("q1"), CorrelationIdEntry("q2")])

    assert context.correlation_id() == "q2"
    assert len(context) == 1


def test_unknown_entry_cannot_be_written():
    with pytest.raises(ContextWriteError):
        Context().with_entry({"not": "an entry"})


def test_mismatched_entry_raises_on_read():
    context = Context({CorrelationIdEntry: HttpHeadersEntry({"a": "b"})})

    with pytest.raises(ContextReadError):
        context.correlation_id()


def test_malformed_correlation_id_raises():
    context = Context.from_entries([CorrelationIdEntry(42)])  # type: ignore[arg-type]

    with pytest.raises(ContextReadError):
        context.correlation_id()


def test_malformed_headers_raise():
    context = Context.from_entries([HttpHeadersEntry({"X-Count": 3})])  # type: ignore[dict-item]

    with pytest.raises(ContextReadError):
        context.http_headers()


def test_response_entry_roundtrip():
    entry = HttpResponseEntry(status_code=200, headers={"x-request-id": "abc"})
    context = Context().with_entry(entry)

    assert context.http_response() == entry
    assert HttpResponseEntry in context
