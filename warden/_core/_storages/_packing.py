from __future__ import annotations

from typing import Any, Mapping, Optional, overload

import msgpack
from typing_extensions import cast

from warden._core._headers import Headers
from warden._core.models import Entry, EntryMeta, Request, Response
from warden._utils import make_async_iterator


def filter_out_warden_metadata(data: Mapping[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if not k.startswith("warden_")}


def pack(value: Entry, /, body: bytes) -> bytes:
    return cast(
        bytes,
        msgpack.packb(
            {
                "generation": value.generation,
                "cache_key": value.cache_key,
                "request": {
                    "method": value.request.method,
                    "url": value.request.url,
                    "headers": value.request.headers._headers,
                    "extra": filter_out_warden_metadata(value.request.metadata),
                },
                "response": {
                    "status_code": value.response.status_code,
                    "headers": value.response.headers._headers,
                    "extra": filter_out_warden_metadata(value.response.metadata),
                    "body": body,
                },
                "meta": {
                    "created_at": value.meta.created_at,
                },
            }
        ),
    )


@overload
def unpack(value: bytes, /) -> Entry: ...


@overload
def unpack(value: Optional[bytes], /) -> Optional[Entry]: ...


def unpack(value: Optional[bytes], /) -> Optional[Entry]:
    if value is None:
        return None

    data = msgpack.unpackb(value)
    body = data["response"]["body"]
    response = Response(
        status_code=data["response"]["status_code"],
        headers=Headers(data["response"]["headers"]),
        metadata=data["response"]["extra"],
        stream=make_async_iterator([body]),
    )
    setattr(response, "collected_body", body)
    return Entry(
        generation=data["generation"],
        cache_key=data["cache_key"],
        request=Request(
            method=data["request"]["method"],
            url=data["request"]["url"],
            headers=Headers(data["request"]["headers"]),
            metadata=data["request"]["extra"],
        ),
        response=response,
        meta=EntryMeta(
            created_at=data["meta"]["created_at"],
        ),
    )
