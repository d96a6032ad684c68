from warden._async_httpx import AsyncCacheClient, AsyncCacheTransport

__all__ = (
    "AsyncCacheClient",
    "AsyncCacheTransport",
)
