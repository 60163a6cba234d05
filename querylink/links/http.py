"""HTTP transport link whose in-flight requests can be aborted."""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from typing import TYPE_CHECKING, Any, Optional, TypeVar, Union

import httpx

from querylink.cancel import CancelSignal
from querylink.context import Context, HttpResponseEntry
from querylink.errors import (
    ContextError,
    ContextWriteError,
    ParseError,
    RequestCancelled,
    RequestFormatError,
    ServerError,
    TransportError,
)
from querylink.links.base import Link, NextLink
from querylink.models import Request, Response
from querylink.multipart import build_multipart, extract_file_map
from querylink.serialization import (
    RequestSerializer,
    ResponseParser,
    default_response_decoder,
    encode_json,
    encode_query_params,
)

if TYPE_CHECKING:
    from querylink.config import LinkSettings

LOGGER = logging.getLogger(__name__)

ResponseDecoder = Callable[[httpx.Response], Union[Any, Awaitable[Any]]]

DEFAULT_HEADERS: dict[str, str] = {
    "Content-Type": "application/json",
    "Accept": "*/*",
}

T = TypeVar("T")
V = TypeVar("V")


class HttpLink(Link):
    """Terminating link that sends requests to a query endpoint over HTTP.

    Every outgoing call races against the request's :class:`CancelSignal`;
    when the signal fires first the send task is cancelled, which makes httpx
    drop the connection, and the stream ends without emitting anything.
    Queries may be sent as ``GET`` when ``use_get_for_queries`` is set and the
    request carries no files. Requests with files are sent as multipart.
    """

    def __init__(
        self,
        uri: Union[str, httpx.URL],
        *,
        default_headers: Optional[Mapping[str, str]] = None,
        use_get_for_queries: bool = False,
        follow_redirects: bool = False,
        timeout: Optional[float] = 30.0,
        client: Optional[httpx.AsyncClient] = None,
        serializer: Optional[RequestSerializer] = None,
        parser: Optional[ResponseParser] = None,
        response_decoder: ResponseDecoder = default_response_decoder,
    ) -> None:
        self.uri = httpx.URL(str(uri))
        self.default_headers = dict(default_headers or {})
        self.use_get_for_queries = use_get_for_queries
        self.follow_redirects = follow_redirects
        self.timeout = timeout
        self.serializer = serializer or RequestSerializer()
        self.parser = parser or ResponseParser()
        self.response_decoder = response_decoder
        self._client = client
        self._owns_client = client is None

    @classmethod
    def from_settings(
        cls,
        settings: Optional["LinkSettings"] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
    ) -> "HttpLink":
        if settings is None:
            from querylink.config import get_settings

            settings = get_settings()
        return cls(
            str(settings.endpoint),
            default_headers=settings.default_headers,
            use_get_for_queries=settings.use_get_for_queries,
            follow_redirects=settings.follow_redirects,
            timeout=settings.timeout_seconds,
            client=client,
        )

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True
        return self._client

    async def request(self, request: Request, forward: Optional[NextLink] = None) -> AsyncIterator[Response]:
        try:
            response = await self.execute(request)
        except RequestCancelled:
            LOGGER.debug("Request %s cancelled; ending stream", request.operation.operation_name)
            return
        yield response

    async def execute(self, request: Request) -> Response:
        """Send ``request`` and return the classified response.

        Raises :class:`RequestCancelled` when the request's signal fires
        before the response arrives.
        """

        signal = request.context.cancel_signal()
        http_request = self.prepare_request(request)
        if signal is not None and signal.is_cancelled:
            raise RequestCancelled(request=request)
        http_response = await self._send(request, http_request, signal)
        if signal is not None and signal.is_cancelled:
            await http_response.aclose()
            raise RequestCancelled(request=request)
        return await self._classify(http_response)

    def prepare_request(self, request: Request) -> httpx.Request:
        body = self._encode_attempt(request, self.serializer.serialize_request, request)

        headers = httpx.Headers(DEFAULT_HEADERS)
        headers.update(self.default_headers)
        headers.update(request.context.http_headers())

        file_map = extract_file_map(body)

        if not file_map and self.use_get_for_queries and request.is_query:
            params = self._encode_attempt(request, encode_query_params, body)
            LOGGER.debug("Sending %s as GET", request.operation.operation_name)
            return self.client.build_request("GET", self.uri, params=params, headers=headers)

        payload = self._encode_attempt(request, encode_json, body)

        if file_map:
            if "content-type" in headers:
                del headers["content-type"]
            data, files = build_multipart(payload, file_map)
            LOGGER.debug("Sending %s as multipart with %s file(s)", request.operation.operation_name, len(files))
            return self.client.build_request("POST", self.uri, data=data, files=files, headers=headers)

        return self.client.build_request("POST", self.uri, content=payload.encode("utf-8"), headers=headers)

    async def _send(
        self,
        request: Request,
        http_request: httpx.Request,
        signal: Optional[CancelSignal],
    ) -> httpx.Response:
        send = asyncio.ensure_future(self.client.send(http_request, follow_redirects=self.follow_redirects))
        if signal is not None:
            waiter = asyncio.ensure_future(signal.wait())
            try:
                await asyncio.wait({send, waiter}, return_when=asyncio.FIRST_COMPLETED)
            except asyncio.CancelledError:
                send.cancel()
                waiter.cancel()
                raise
            if not send.done():
                LOGGER.debug("Aborting in-flight request to %s", http_request.url)
                await _abort(send)
                raise RequestCancelled(request=request)
            waiter.cancel()
        try:
            return await send
        except (httpx.HTTPError, OSError) as exc:
            raise TransportError(f"Request to {http_request.url} failed: {exc}", request=request) from exc

    async def _classify(self, http_response: httpx.Response) -> Response:
        status = http_response.status_code
        try:
            parsed = await self._parse(http_response)
        except ParseError as exc:
            if status >= 300:
                raise ServerError(
                    f"Server responded with status {status}",
                    response=http_response,
                ) from exc
            raise

        if status >= 300 or (parsed.data is None and parsed.errors is None):
            reason = f"status {status}" if status >= 300 else "neither data nor errors"
            raise ServerError(
                f"Server returned {reason}",
                response=http_response,
                parsed_response=parsed,
            )
        return parsed.with_context(self._response_context(parsed, http_response))

    async def _parse(self, http_response: httpx.Response) -> Response:
        try:
            body = self.response_decoder(http_response)
            if inspect.isawaitable(body):
                body = await body
            if body is None:
                raise ValueError("response body decoded to nothing")
            return self.parser.parse_response(body)
        except Exception as exc:  # noqa: BLE001
            raise ParseError(f"Could not parse response: {exc}", response=http_response) from exc

    @staticmethod
    def _response_context(parsed: Response, http_response: httpx.Response) -> Context:
        entry = HttpResponseEntry(
            status_code=http_response.status_code,
            headers=dict(http_response.headers.items()),
        )
        try:
            return parsed.context.with_entry(entry)
        except ContextWriteError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise ContextWriteError(f"Could not record response metadata: {exc}") from exc

    @staticmethod
    def _encode_attempt(request: Request, encoder: Callable[[V], T], value: V) -> T:
        try:
            return encoder(value)
        except ContextError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise RequestFormatError(f"Could not encode request: {exc}", request=request) from exc

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def dispose(self) -> None:
        await self.aclose()

    async def __aenter__(self) -> "HttpLink":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return f"HttpLink({str(self.uri)!r})"


async def _abort(send: "asyncio.Future[httpx.Response]") -> None:
    send.cancel()
    with contextlib.suppress(asyncio.CancelledError, httpx.HTTPError, OSError):
        response = await send
        # The response won the race by a hair; nobody will read it.
        await response.aclose()


__all__ = ["HttpLink", "DEFAULT_HEADERS", "ResponseDecoder"]
