from __future__ import annotations

import types
import typing as t
from typing import AsyncIterator, cast

import httpx

from warden._async_worker import AsyncCacheWorker
from warden._core._classifier import Strategy, classify
from warden._core._headers import Headers
from warden._core._options import WorkerOptions
from warden._core._storages._async_base import AsyncBaseStorage
from warden._core.models import Request, RequestMetadata, Response, extract_metadata_from_headers
from warden._events import AsyncEventDispatcher
from warden._hooks import AsyncDeferredHooks, BaseNotificationSink
from warden._host import BaseHost
from warden._lifecycle import AsyncCacheLifecycle
from warden._utils import filter_mapping, make_async_iterator

# 128 KB
CHUNK_SIZE = 131072


class _IteratorStream(httpx.AsyncByteStream):
    def __init__(self, iterator: AsyncIterator[bytes]) -> None:
        self.iterator = iterator

    async def __aiter__(self) -> AsyncIterator[bytes]:
        async for chunk in self.iterator:
            yield chunk


def _headers_from_httpx(headers: httpx.Headers) -> Headers:
    return Headers(filter_mapping(dict(headers.items()), ["Transfer-Encoding"]))


def _request_from_httpx(request: httpx.Request) -> Request:
    headers = _headers_from_httpx(request.headers)
    metadata = extract_metadata_from_headers(headers)
    if "warden_destination" in request.extensions:
        # The extension wins over the Sec-Fetch-Dest header
        metadata = RequestMetadata(warden_destination=request.extensions["warden_destination"])

    try:
        stream = make_async_iterator([request.content])
    except httpx.RequestNotRead:
        stream = cast(AsyncIterator[bytes], request.stream)

    return Request(method=request.method, url=str(request.url), headers=headers, stream=stream, metadata=metadata)


def _request_to_httpx(request: Request) -> httpx.Request:
    return httpx.Request(
        method=request.method,
        url=request.url,
        headers=request.headers,
        stream=_IteratorStream(request._aiter_stream()),
    )


def _response_from_httpx(response: httpx.Response) -> Response:
    headers = _headers_from_httpx(response.headers)
    if not response.is_stream_consumed:
        return Response(
            status_code=response.status_code,
            headers=headers,
            stream=response.aiter_raw(chunk_size=CHUNK_SIZE),
        )

    # A consumed body is already decoded, the encoding headers no longer describe it
    headers = Headers(
        {
            **filter_mapping(headers, ["Content-Encoding", "Content-Length"]),
            "content-length": str(len(response.content)),
        }
    )
    return Response(
        status_code=response.status_code,
        headers=headers,
        stream=make_async_iterator([response.content]),
    )


def _response_to_httpx(response: Response) -> httpx.Response:
    # warden_* metadata is surfaced as response extensions
    return httpx.Response(
        status_code=response.status_code,
        headers=response.headers,
        stream=_IteratorStream(response._aiter_stream()),
        extensions=dict(response.metadata),
    )


class AsyncCacheTransport(httpx.AsyncBaseTransport):
    """
    httpx transport that intercepts requests before they reach `next_transport`.

    GET requests are answered by the cache worker; every other method goes
    to `next_transport` untouched. Network errors of intercepted requests
    never reach the caller, they are answered from the cache or with the
    offline page instead.

    Use the transport (or the client owning it) as an async context manager
    so cache writes run in the background. Installing through
    `dispatcher` requires `options.base_url`, since httpx only sends
    absolute URLs.
    """

    def __init__(
        self,
        next_transport: httpx.AsyncBaseTransport,
        storage: AsyncBaseStorage | None = None,
        options: WorkerOptions | None = None,
        host: BaseHost | None = None,
        notifications: BaseNotificationSink | None = None,
    ) -> None:
        self.next_transport = next_transport
        self.worker = AsyncCacheWorker(
            request_sender=self.request_sender,
            storage=storage,
            options=options,
        )
        self.storage = self.worker.storage
        self.options = self.worker.options
        self.lifecycle = AsyncCacheLifecycle(
            request_sender=self.request_sender,
            storage=self.storage,
            options=self.options,
            host=host,
            absolute_urls=True,
        )
        self.hooks = AsyncDeferredHooks(options=self.options, notifications=notifications)
        self.dispatcher = AsyncEventDispatcher(worker=self.worker, lifecycle=self.lifecycle, hooks=self.hooks)

    async def __aenter__(self) -> "AsyncCacheTransport":
        await self.worker.__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: types.TracebackType | None = None,
    ) -> None:
        try:
            await self.worker.__aexit__(exc_type, exc_value, traceback)
        finally:
            await self.aclose()

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        if classify(request.method, str(request.url), self.options) is Strategy.BYPASS:
            return await self.next_transport.handle_async_request(request)

        response = await self.worker.handle_request(_request_from_httpx(request))
        assert response is not None
        return _response_to_httpx(response)

    async def aclose(self) -> None:
        await self.next_transport.aclose()
        await self.storage.close()

    async def request_sender(self, request: Request) -> Response:
        response = await self.next_transport.handle_async_request(_request_to_httpx(request))
        return _response_from_httpx(response)


class AsyncCacheClient(httpx.AsyncClient):
    """
    `httpx.AsyncClient` whose transports, proxy mounts included, are wrapped
    in `AsyncCacheTransport`. A `transport=` passed explicitly is used as is.

    Args:
        storage: Shared by every wrapped transport.
        options: Cache generation and classification settings.
        host: Receives lifecycle signals.
        notifications: Where push notifications are displayed.
    """

    def __init__(
        self,
        *args: t.Any,
        storage: AsyncBaseStorage | None = None,
        options: WorkerOptions | None = None,
        host: BaseHost | None = None,
        notifications: BaseNotificationSink | None = None,
        **kwargs: t.Any,
    ) -> None:
        self.storage = storage
        self.options = options
        self.host = host
        self.notifications = notifications
        super().__init__(*args, **kwargs)

    def _wrap(self, next_transport: httpx.AsyncBaseTransport) -> AsyncCacheTransport:
        return AsyncCacheTransport(
            next_transport=next_transport,
            storage=self.storage,
            options=self.options,
            host=self.host,
            notifications=self.notifications,
        )

    def _init_transport(  # type: ignore[override]
        self, transport: httpx.AsyncBaseTransport | None = None, **kwargs: t.Any
    ) -> httpx.AsyncBaseTransport:
        if transport is not None:
            return transport
        return self._wrap(super()._init_transport(**kwargs))

    def _init_proxy_transport(  # type: ignore[override]
        self, proxy: httpx.Proxy, **kwargs: t.Any
    ) -> httpx.AsyncBaseTransport:
        return self._wrap(super()._init_proxy_transport(proxy, **kwargs))
