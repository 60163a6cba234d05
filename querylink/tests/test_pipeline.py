import asyncio
import json

import httpx
import pytest

from querylink import (
    CancellationLink,
    Context,
    CorrelationIdEntry,
    HttpLink,
    Link,
    Operation,
    Request,
)

SEARCH = Operation(document="query Search($text: String!) { search(text: $text) { id } }", operation_name="Search")


class _SlowEndpoint:
    """Answers after the test releases each request; records aborted calls."""

    def __init__(self) -> None:
        self.started: list[str] = []
        self.aborted: list[str] = []
        self.release: dict[str, asyncio.Event] = {}
        self.arrived = asyncio.Event()

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        text = json.loads(request.content)["variables"]["text"]
        gate = self.release.setdefault(text, asyncio.Event())
        self.started.append(text)
        self.arrived.set()
        try:
            await gate.wait()
        except asyncio.CancelledError:
            self.aborted.append(text)
            raise
        return httpx.Response(200, json={"data": {"search": [{"id": text}]}})


def _search(text: str) -> Request:
    return Request(
        operation=SEARCH,
        variables={"text": text},
        context=Context.from_entries([CorrelationIdEntry("search-box")]),
    )


async def _collect(link: Link, request: Request) -> list:
    return [response async for response in link.request(request)]


@pytest.mark.asyncio
async def test_newer_search_aborts_older_one_on_the_wire():
    endpoint = _SlowEndpoint()
    client = httpx.AsyncClient(transport=httpx.MockTransport(endpoint))
    cancellation = CancellationLink()
    link = Link.from_links([cancellation, HttpLink("https://api.example.test/graphql", client=client)])

    older = asyncio.create_task(_collect(link, _search("ap")))
    await asyncio.wait_for(endpoint.arrived.wait(), timeout=1)
    endpoint.arrived.clear()

    newer = asyncio.create_task(_collect(link, _search("apple")))
    await asyncio.wait_for(endpoint.arrived.wait(), timeout=1)

    assert await asyncio.wait_for(older, timeout=1) == []
    assert endpoint.aborted == ["ap"]

    endpoint.release["apple"].set()
    responses = await asyncio.wait_for(newer, timeout=1)

    assert [r.data for r in responses] == [{"search": [{"id": "apple"}]}]
    assert responses[0].context.http_response().status_code == 200
    assert len(cancellation.registry) == 0

    await link.dispose()
    await client.aclose()


@pytest.mark.asyncio
async def test_dispose_cancels_in_flight_requests():
    endpoint = _SlowEndpoint()
    client = httpx.AsyncClient(transport=httpx.MockTransport(endpoint))
    link = Link.from_links([CancellationLink(), HttpLink("https://api.example.test/graphql", client=client)])

    pending = asyncio.create_task(_collect(link, _search("pear")))
    await asyncio.wait_for(endpoint.arrived.wait(), timeout=1)

    await link.dispose()

    assert await asyncio.wait_for(pending, timeout=1) == []
    assert endpoint.aborted == ["pear"]
    await client.aclose()


def test_from_links_requires_links():
    with pytest.raises(ValueError):
        Link.from_links([])
