from __future__ import annotations

import logging
import types
from typing import Awaitable, Callable, Optional

from typing_extensions import assert_never

from warden._background import BackgroundWriter
from warden._core._classifier import Strategy, classify, is_cacheable_asset
from warden._core._offline import create_offline_response
from warden._core._options import WorkerOptions
from warden._core._storages._async_base import AsyncBaseCache, AsyncBaseStorage
from warden._core._storages._async_sqlite import AsyncSqliteStorage
from warden._core.models import Entry, Request, Response, ResponseMetadata
from warden._utils import make_cache_key, resolve_url

logger = logging.getLogger("warden.worker")


class AsyncCacheWorker:
    """
    Decides how each intercepted request is answered.

    Requests are classified first. Non-GET requests are not intercepted,
    live-data endpoints go network-first and everything else goes
    cache-first. Whatever happens on the network or in the storage, an
    intercepted request always resolves to a response; the worst case is
    the synthesized offline page.

    This class is independent of any specific HTTP library and works only with
    internal models. It delegates network requests to a user-provided callable,
    which signals a network failure by raising.

    Args:
        request_sender: Callable that sends HTTP requests and returns responses.
        storage: Storage backend holding the cache generations. Defaults to AsyncSqliteStorage.
        options: Generation name and classification settings. Defaults to WorkerOptions().
    """

    def __init__(
        self,
        request_sender: Callable[[Request], Awaitable[Response]],
        storage: AsyncBaseStorage | None = None,
        options: WorkerOptions | None = None,
    ) -> None:
        self.send_request = request_sender
        self.storage = storage if storage is not None else AsyncSqliteStorage()
        self.options = options if options is not None else WorkerOptions()
        self.background = BackgroundWriter(self.options.max_background_writes)

    async def __aenter__(self) -> "AsyncCacheWorker":
        await self.background.__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: types.TracebackType | None = None,
    ) -> None:
        await self.background.__aexit__(exc_type, exc_value, traceback)

    def classify(self, request: Request) -> Strategy:
        return classify(request.method, request.url, self.options)

    async def handle_request(self, request: Request) -> Optional[Response]:
        """
        Returns the response for the request, or None when the request is
        not intercepted and should go to the network untouched.
        """
        strategy = self.classify(request)
        logger.debug(f"Handling request with strategy: {strategy.value}")

        if strategy is Strategy.BYPASS:
            return None
        elif strategy is Strategy.NETWORK_FIRST:
            response = await self._handle_network_first(request)
        elif strategy is Strategy.CACHE_FIRST:
            response = await self._handle_cache_first(request)
        else:
            assert_never(strategy)

        response.metadata.update(ResponseMetadata(warden_strategy=strategy.value))  # type: ignore
        return response

    async def _handle_network_first(self, request: Request) -> Response:
        try:
            response = await self.send_request(request)
            snapshot = await response.snapshot() if response.ok else None
        except Exception as exc:
            logger.debug(f"Network request failed: {exc!r}")
            return await self._cached_or_offline(request.url)

        self._mark_live(response, stored=snapshot is not None)
        if snapshot is not None:
            await self._store_in_background(request, snapshot)
        return response

    async def _handle_cache_first(self, request: Request) -> Response:
        entry = await self._lookup(request.url)
        if entry is not None:
            return self._from_cache(entry)

        try:
            response = await self.send_request(request)
            cacheable = response.ok and is_cacheable_asset(request.url, self.options.cacheable_extensions)
            snapshot = await response.snapshot() if cacheable else None
        except Exception as exc:
            logger.debug(f"Network request failed: {exc!r}")
            if request.destination == "document":
                logger.debug("Falling back to the cached root document")
                # Without a configured base URL the root is the request's own origin
                root = resolve_url(self.options.base_url or request.url, "/")
                return await self._cached_or_offline(root)
            return self._offline()

        self._mark_live(response, stored=snapshot is not None)
        if snapshot is not None:
            await self._store_in_background(request, snapshot)
        return response

    async def _open_cache(self) -> AsyncBaseCache:
        return await self.storage.open(self.options.generation)

    async def _lookup(self, url: str) -> Optional[Entry]:
        try:
            cache = await self._open_cache()
            return await cache.match(make_cache_key(url))
        except Exception:
            logger.warning(f"Cache lookup failed for {url}", exc_info=True)
            return None

    async def _cached_or_offline(self, url: str) -> Response:
        entry = await self._lookup(url)
        if entry is not None:
            return self._from_cache(entry)
        return self._offline()

    async def _store_in_background(self, request: Request, snapshot: Response) -> None:
        key = make_cache_key(request.url)

        async def write() -> None:
            cache = await self._open_cache()
            await cache.put(key, request, snapshot)

        logger.debug("Storing response in cache")
        await self.background.schedule(request.url, write)

    def _from_cache(self, entry: Entry) -> Response:
        logger.debug("Serving response from cache")
        response_meta = ResponseMetadata(
            warden_from_cache=True,
            warden_created_at=entry.meta.created_at,
            warden_stored=False,
            warden_offline=False,
        )
        entry.response.metadata = {**entry.response.metadata, **response_meta}
        return entry.response

    def _mark_live(self, response: Response, stored: bool) -> None:
        response_meta = ResponseMetadata(
            warden_from_cache=False,
            warden_stored=stored,
            warden_offline=False,
        )
        response.metadata = {**response.metadata, **response_meta}

    def _offline(self) -> Response:
        logger.debug("Serving offline response")
        return create_offline_response()
