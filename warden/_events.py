from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type, Union

from warden._async_worker import AsyncCacheWorker
from warden._core.models import Request, Response
from warden._hooks import AsyncDeferredHooks, Notification, PushData
from warden._lifecycle import AsyncCacheLifecycle


@dataclass
class InstallEvent:
    pass


@dataclass
class ActivateEvent:
    pass


@dataclass
class FetchEvent:
    request: Request


@dataclass
class SyncEvent:
    tag: str


@dataclass
class PushEvent:
    data: PushData = None


AnyEvent = Union[InstallEvent, ActivateEvent, FetchEvent, SyncEvent, PushEvent]
EventResult = Union[List[str], Optional[Response], bool, Optional[Notification]]


class AsyncEventDispatcher:
    """
    Routes host events to their handlers.

    Each event type has exactly one handler in the dispatch table:

    - InstallEvent  -> lifecycle.on_install, returns the cached manifest paths
    - ActivateEvent -> lifecycle.on_activate, returns the deleted generations
    - FetchEvent    -> worker.handle_request, returns a response or None when bypassed
    - SyncEvent     -> hooks.on_sync, returns whether the tag was recognized
    - PushEvent     -> hooks.on_push, returns the displayed notification, if any
    """

    def __init__(
        self,
        worker: AsyncCacheWorker,
        lifecycle: AsyncCacheLifecycle,
        hooks: AsyncDeferredHooks | None = None,
    ) -> None:
        self.worker = worker
        self.lifecycle = lifecycle
        self.hooks = hooks if hooks is not None else AsyncDeferredHooks(options=worker.options)
        self._handlers: Dict[Type[Any], Callable[[Any], Awaitable[EventResult]]] = {
            InstallEvent: self._on_install,
            ActivateEvent: self._on_activate,
            FetchEvent: self._on_fetch,
            SyncEvent: self._on_sync,
            PushEvent: self._on_push,
        }

    async def dispatch(self, event: AnyEvent) -> EventResult:
        handler = self._handlers.get(type(event))
        if handler is None:
            raise TypeError(f"Unsupported event type: {type(event).__name__}")
        return await handler(event)

    async def _on_install(self, event: InstallEvent) -> List[str]:
        return await self.lifecycle.on_install()

    async def _on_activate(self, event: ActivateEvent) -> List[str]:
        return await self.lifecycle.on_activate()

    async def _on_fetch(self, event: FetchEvent) -> Optional[Response]:
        return await self.worker.handle_request(event.request)

    async def _on_sync(self, event: SyncEvent) -> bool:
        return await self.hooks.on_sync(event.tag)

    async def _on_push(self, event: PushEvent) -> Optional[Notification]:
        return await self.hooks.on_push(event.data)
