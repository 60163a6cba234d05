"""Link contract and chain composition."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable, Sequence
from typing import Optional

from querylink.models import Request, Response

NextLink = Callable[[Request], AsyncIterator[Response]]


class Link(ABC):
    """A pipeline stage.

    A link either answers a request itself (terminating links such as the HTTP
    transport) or hands a possibly updated request to ``forward``.
    """

    @abstractmethod
    def request(self, request: Request, forward: Optional[NextLink] = None) -> AsyncIterator[Response]:
        ...

    async def dispose(self) -> None:
        """Release held resources."""

    def concat(self, other: "Link") -> "Link":
        return _LinkChain(self, other)

    @staticmethod
    def from_links(links: Sequence["Link"]) -> "Link":
        if not links:
            raise ValueError("at least one link is required")
        chain = links[-1]
        for link in reversed(links[:-1]):
            chain = _LinkChain(link, chain)
        return chain


class _LinkChain(Link):
    def __init__(self, first: Link, second: Link) -> None:
        self.first = first
        self.second = second

    def request(self, request: Request, forward: Optional[NextLink] = None) -> AsyncIterator[Response]:
        def _next(updated: Request) -> AsyncIterator[Response]:
            return self.second.request(updated, forward)

        return self.first.request(request, _next)

    async def dispose(self) -> None:
        await self.first.dispose()
        await self.second.dispose()

    def __repr__(self) -> str:
        return f"{self.first!r} -> {self.second!r}"


__all__ = ["Link", "NextLink"]
