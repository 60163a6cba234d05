"""Link that cancels superseded in-flight requests."""

from __future__ import annotations

import logging
import threading
from collections.abc import AsyncIterator
from typing import Dict, List, Optional

from querylink.cancel import CancelSignal
from querylink.context import CancelSignalEntry
from querylink.errors import RequestFormatError
from querylink.keys import request_key
from querylink.links.base import Link, NextLink
from querylink.models import Request, Response

LOGGER = logging.getLogger(__name__)


class CancellationRegistry:
    """Active signals indexed by correlation id and by request key.

    Each slot holds at most one live signal. Replacing an occupant cancels it
    first; removal only happens while the slot still holds the caller's own
    signal, so a late-finishing request never evicts its successor.
    """

    def __init__(self) -> None:
        self._by_correlation: Dict[str, CancelSignal] = {}
        self._by_key: Dict[str, CancelSignal] = {}
        # Reentrant: cancel callbacks run while the lock is held.
        self._lock = threading.RLock()

    def supersede(self, key: str, correlation_id: Optional[str], signal: CancelSignal) -> List[CancelSignal]:
        """Cancel the occupants of ``key``/``correlation_id`` and install ``signal``.

        Returns the signals that were cancelled by this call.
        """

        cancelled: List[CancelSignal] = []
        with self._lock:
            if correlation_id is not None:
                previous = self._by_correlation.get(correlation_id)
                if previous is not None and not previous.is_cancelled:
                    previous.cancel()
                    cancelled.append(previous)
            previous = self._by_key.get(key)
            if previous is not None and not previous.is_cancelled:
                previous.cancel()
                cancelled.append(previous)
            if correlation_id is not None:
                self._by_correlation[correlation_id] = signal
            self._by_key[key] = signal
        return cancelled

    def release(self, key: str, correlation_id: Optional[str], signal: CancelSignal) -> None:
        with self._lock:
            if correlation_id is not None:
                if self._by_correlation.get(correlation_id) is signal:
                    del self._by_correlation[correlation_id]
                else:
                    LOGGER.debug("Correlation slot %s owned by a newer request; keeping it", correlation_id)
            if self._by_key.get(key) is signal:
                del self._by_key[key]
            else:
                LOGGER.debug("Key slot %s owned by a newer request; keeping it", key)

    def cancel_all(self) -> int:
        with self._lock:
            signals = {id(s): s for s in (*self._by_correlation.values(), *self._by_key.values())}
            self._by_correlation.clear()
            self._by_key.clear()
            for signal in signals.values():
                signal.cancel()
        return len(signals)

    def signal_for_key(self, key: str) -> Optional[CancelSignal]:
        with self._lock:
            return self._by_key.get(key)

    def signal_for_correlation(self, correlation_id: str) -> Optional[CancelSignal]:
        with self._lock:
            return self._by_correlation.get(correlation_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_key) + len(self._by_correlation)


class CancellationLink(Link):
    """Cancels earlier in-flight requests that a new request supersedes.

    A request supersedes an earlier one when both carry the same correlation
    id (the same live query whose variables changed) or when both share the
    same request key (a duplicate). Must sit in front of a transport that
    honours :class:`CancelSignalEntry`.
    """

    def __init__(self, registry: Optional[CancellationRegistry] = None) -> None:
        self.registry = registry or CancellationRegistry()

    async def request(self, request: Request, forward: Optional[NextLink] = None) -> AsyncIterator[Response]:
        if forward is None:
            return

        correlation_id = request.context.correlation_id()
        upstream = request.context.cancel_signal()
        try:
            key = request_key(request)
        except (TypeError, ValueError) as exc:
            raise RequestFormatError(f"Could not derive request key: {exc}", request=request) from exc

        signal = CancelSignal()
        superseded = self.registry.supersede(key, correlation_id, signal)
        if superseded:
            LOGGER.debug(
                "Cancelled %s superseded request(s) key=%s correlation=%s",
                len(superseded),
                key,
                correlation_id,
            )
        if upstream is not None:
            upstream.add_callback(signal.cancel)

        stream: Optional[AsyncIterator[Response]] = None
        try:
            stream = forward(request.update_context(CancelSignalEntry(signal)))
            async for response in stream:
                if signal.is_cancelled:
                    break
                yield response
        except Exception:
            if not signal.is_cancelled:
                raise
            LOGGER.debug("Dropping error from cancelled request key=%s", key, exc_info=True)
        finally:
            self.registry.release(key, correlation_id, signal)
            if upstream is not None:
                upstream.remove_callback(signal.cancel)
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                try:
                    await aclose()
                except Exception:
                    if not signal.is_cancelled:
                        raise
                    LOGGER.debug("Dropping close error from cancelled request key=%s", key, exc_info=True)

    def cancel_all(self) -> None:
        count = self.registry.cancel_all()
        LOGGER.debug("Cancelled %s active request(s)", count)

    async def dispose(self) -> None:
        self.cancel_all()


__all__ = ["CancellationLink", "CancellationRegistry"]
