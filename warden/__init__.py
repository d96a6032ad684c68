from warden._core._classifier import Strategy as Strategy, classify as classify, is_cacheable_asset
from warden._core._headers import Headers as Headers
from warden._core._offline import OFFLINE_HTML, create_offline_response
from warden._core._options import WorkerOptions as WorkerOptions
from warden._core._storages._async_base import AsyncBaseCache, AsyncBaseStorage
from warden._core._storages._async_sqlite import AsyncSqliteCache, AsyncSqliteStorage
from warden._core.models import (
    Entry as Entry,
    EntryMeta as EntryMeta,
    Request as Request,
    RequestMetadata as RequestMetadata,
    Response as Response,
    ResponseMetadata as ResponseMetadata,
)
from warden._async_worker import AsyncCacheWorker as AsyncCacheWorker
from warden._background import BackgroundWriter
from warden._events import (
    ActivateEvent,
    AnyEvent,
    AsyncEventDispatcher,
    FetchEvent,
    InstallEvent,
    PushEvent,
    SyncEvent,
)
from warden._hooks import (
    BADGE_DATA_URI,
    ICON_DATA_URI,
    AsyncDeferredHooks,
    BaseNotificationSink,
    Notification,
    NullNotificationSink,
)
from warden._host import BaseHost, NullHost
from warden._lifecycle import AsyncCacheLifecycle

__all__ = (
    ## Classification
    "Strategy",
    "classify",
    "is_cacheable_asset",
    ## Offline fallback
    "OFFLINE_HTML",
    "create_offline_response",
    ## Options
    "WorkerOptions",
    ## Models
    "Request",
    "Response",
    "Entry",
    "EntryMeta",
    "RequestMetadata",
    "ResponseMetadata",
    ## Headers
    "Headers",
    ## Storages
    "AsyncBaseCache",
    "AsyncBaseStorage",
    "AsyncSqliteCache",
    "AsyncSqliteStorage",
    # Engine
    "AsyncCacheWorker",
    "BackgroundWriter",
    "AsyncCacheLifecycle",
    # Events
    "AnyEvent",
    "InstallEvent",
    "ActivateEvent",
    "FetchEvent",
    "SyncEvent",
    "PushEvent",
    "AsyncEventDispatcher",
    # Hooks
    "AsyncDeferredHooks",
    "Notification",
    "BaseNotificationSink",
    "NullNotificationSink",
    "ICON_DATA_URI",
    "BADGE_DATA_URI",
    # Host
    "BaseHost",
    "NullHost",
)
