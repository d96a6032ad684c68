from warden._core._classifier import Strategy as Strategy, classify as classify
from warden._core._headers import Headers as Headers
from warden._core._offline import create_offline_response as create_offline_response
from warden._core._options import WorkerOptions as WorkerOptions
from warden._core.models import (
    Entry as Entry,
    EntryMeta as EntryMeta,
    Request as Request,
    RequestMetadata as RequestMetadata,
    Response as Response,
    ResponseMetadata as ResponseMetadata,
)

__all__ = (
    "Strategy",
    "classify",
    "Headers",
    "create_offline_response",
    "WorkerOptions",
    "Entry",
    "EntryMeta",
    "Request",
    "RequestMetadata",
    "Response",
    "ResponseMetadata",
)
