from __future__ import annotations

import logging
from typing import Awaitable, Callable, List
from urllib.parse import urlsplit

import anyio

from warden._core._options import WorkerOptions
from warden._core._storages._async_base import AsyncBaseCache, AsyncBaseStorage
from warden._core.models import Request, Response
from warden._host import BaseHost, NullHost
from warden._utils import make_cache_key, resolve_url

logger = logging.getLogger("warden.lifecycle")


class AsyncCacheLifecycle:
    """
    Owns the current cache generation.

    On install the current generation is created and seeded with the
    manifest; on activate every other generation is deleted. Both steps are
    best effort: a path that cannot be fetched or a generation that cannot
    be deleted is logged and skipped, and the host signal is always sent.

    Args:
        request_sender: Callable used to fetch manifest paths.
        storage: Storage backend holding the cache generations.
        options: Current generation name and install manifest.
        host: Receives the skip-waiting and claim-clients signals. Defaults to NullHost().
        absolute_urls: Refuse to install when a manifest path does not resolve
            to an absolute URL. Senders that cannot fetch relative paths, such
            as httpx transports, need this.
    """

    def __init__(
        self,
        request_sender: Callable[[Request], Awaitable[Response]],
        storage: AsyncBaseStorage,
        options: WorkerOptions | None = None,
        host: BaseHost | None = None,
        absolute_urls: bool = False,
    ) -> None:
        self.send_request = request_sender
        self.storage = storage
        self.options = options if options is not None else WorkerOptions()
        self.host = host if host is not None else NullHost()
        self.absolute_urls = absolute_urls

    async def on_install(self) -> List[str]:
        """
        Seeds the current generation with the manifest.

        Returns:
            The manifest paths that were cached, in manifest order.

        Raises:
            ValueError: `absolute_urls` is set and a manifest path resolves to a
                relative URL, which means `base_url` is missing.
        """
        if self.absolute_urls:
            for path in self.options.manifest:
                if not urlsplit(resolve_url(self.options.base_url, path)).scheme:
                    raise ValueError(f"Manifest path {path!r} is not an absolute URL, set WorkerOptions.base_url")

        cached: set[str] = set()
        try:
            cache = await self.storage.open(self.options.generation)
            logger.info(f"Caching assets into {self.options.generation}")
            async with anyio.create_task_group() as task_group:
                for path in self.options.manifest:
                    task_group.start_soon(self._seed, cache, path, cached)
        except Exception:
            logger.warning(f"Could not open cache generation {self.options.generation}", exc_info=True)

        if len(cached) < len(self.options.manifest):
            logger.warning("Some assets could not be cached")

        await self.host.skip_waiting()
        return [path for path in self.options.manifest if path in cached]

    async def _seed(self, cache: AsyncBaseCache, path: str, cached: set[str]) -> None:
        url = resolve_url(self.options.base_url, path)
        request = Request(method="GET", url=url)
        try:
            response = await self.send_request(request)
            if not response.ok:
                # Drain the body so the upstream connection is released
                await response.aread()
                logger.warning(f"Could not cache {path}: status {response.status_code}")
                return
            await cache.put(make_cache_key(url), request, response)
        except Exception as exc:
            logger.warning(f"Could not cache {path}: {exc!r}")
            return
        cached.add(path)

    async def on_activate(self) -> List[str]:
        """
        Deletes every generation except the current one.

        Deletions run concurrently and all of them finish before the host is
        told to claim its clients.

        Returns:
            Names of the deleted generations, sorted.
        """
        deleted: List[str] = []
        try:
            names = await self.storage.generation_names()
            stale = sorted(name for name in names if name != self.options.generation)
            async with anyio.create_task_group() as task_group:
                for name in stale:
                    task_group.start_soon(self._remove_generation, name, deleted)
        finally:
            await self.host.claim_clients()
        return sorted(deleted)

    async def _remove_generation(self, name: str, deleted: List[str]) -> None:
        logger.info(f"Removing old cache: {name}")
        try:
            if await self.storage.delete_generation(name):
                deleted.append(name)
        except Exception:
            logger.warning(f"Could not remove old cache: {name}", exc_info=True)
