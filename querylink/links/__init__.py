"""Links: composable request pipeline stages."""

from querylink.links.base import Link, NextLink
from querylink.links.cancellation import CancellationLink, CancellationRegistry
from querylink.links.http import DEFAULT_HEADERS, HttpLink

__all__ = [
    "Link",
    "NextLink",
    "CancellationLink",
    "CancellationRegistry",
    "HttpLink",
    "DEFAULT_HEADERS",
]
