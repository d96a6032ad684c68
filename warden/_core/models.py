from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import (
    Any,
    AsyncIterable,
    AsyncIterator,
    Mapping,
    Optional,
    TypedDict,
    cast,
)

from warden._core._headers import Headers
from warden._utils import make_async_iterator


class RequestMetadata(TypedDict, total=False):
    # All the names here should be prefixed with "warden_" to avoid collisions with user data
    warden_destination: str | None
    """
    What the request is for: "document" for a full page navigation, "style",
    "script", "image" and so on. Mirrors the browser's Sec-Fetch-Dest values.
    """


def extract_metadata_from_headers(
    headers: Mapping[str, str],
) -> RequestMetadata:
    metadata: RequestMetadata = {}
    if "Sec-Fetch-Dest" in headers:
        metadata["warden_destination"] = headers["Sec-Fetch-Dest"].strip().lower()
    return metadata


@dataclass
class Request:
    method: str
    url: str
    headers: Headers = field(default_factory=lambda: Headers({}))
    stream: AsyncIterator[bytes] = field(default_factory=lambda: make_async_iterator([]))
    metadata: RequestMetadata | Mapping[str, Any] = field(default_factory=dict)

    @property
    def destination(self) -> Optional[str]:
        return cast(Optional[str], self.metadata.get("warden_destination"))

    async def _aiter_stream(self) -> AsyncIterator[bytes]:
        if not isinstance(self.stream, (AsyncIterator, AsyncIterable)):
            raise TypeError("Request stream is not an AsyncIterator")
        async for chunk in self.stream:
            yield chunk


class ResponseMetadata(TypedDict, total=False):
    # All the names here should be prefixed with "warden_" to avoid collisions with user data
    warden_from_cache: bool
    """Indicates whether the response was served from cache."""

    warden_stored: bool
    """Indicates whether a background cache write was scheduled for the response."""

    warden_offline: bool
    """Indicates whether the response is the synthesized offline fallback."""

    warden_strategy: str
    """The strategy that produced the response, e.g. "network-first"."""

    warden_created_at: float
    """Timestamp when the response was cached."""


@dataclass
class Response:
    status_code: int
    headers: Headers = field(default_factory=lambda: Headers({}))
    stream: AsyncIterator[bytes] = field(default_factory=lambda: make_async_iterator([]))
    metadata: ResponseMetadata | Mapping[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """
        True for 2xx and 3xx status codes.
        """
        return 200 <= self.status_code < 400

    async def _aiter_stream(self) -> AsyncIterator[bytes]:
        if hasattr(self, "collected_body"):
            yield getattr(self, "collected_body")
            return
        if isinstance(self.stream, (AsyncIterator, AsyncIterable)):
            async for chunk in self.stream:
                yield chunk
        else:
            raise TypeError("Response stream is not an AsyncIterator")

    async def aread(self) -> bytes:
        """
        Asynchronously reads the entire response body without consuming the stream.
        """
        if hasattr(self, "collected_body"):
            return cast(bytes, getattr(self, "collected_body"))

        if not isinstance(self.stream, (AsyncIterator, AsyncIterable)):
            raise TypeError("Response stream is not an AsyncIterator")

        collected = b"".join([chunk async for chunk in self.stream])
        setattr(self, "collected_body", collected)
        self.stream = make_async_iterator([collected])
        return collected

    async def snapshot(self) -> "Response":
        """
        Returns an independent copy of the response with its body fully read.

        The original response stays readable.
        """
        body = await self.aread()
        clone = Response(
            status_code=self.status_code,
            headers=self.headers.copy(),
            stream=make_async_iterator([body]),
            metadata={},
        )
        setattr(clone, "collected_body", body)
        return clone


@dataclass
class EntryMeta:
    created_at: float = field(default_factory=time.time)


@dataclass
class Entry:
    generation: str
    cache_key: str
    request: Request
    response: Response
    meta: EntryMeta = field(default_factory=EntryMeta)
