from __future__ import annotations

import enum
from typing import Iterable

from warden._core._options import WorkerOptions
from warden._utils import url_path


class Strategy(str, enum.Enum):
    BYPASS = "bypass"
    """The request is not intercepted at all."""

    NETWORK_FIRST = "network-first"
    """Prefer a live fetch, fall back to the cache, then to the offline page."""

    CACHE_FIRST = "cache-first"
    """Prefer a stored entry, fall back to the network, then to the offline page."""


def classify(method: str, url: str, options: WorkerOptions) -> Strategy:
    """
    Maps a request to the strategy that handles it.

    Only GET requests are intercepted. A GET whose URL contains one of
    `options.network_first_patterns` is a live-data request, everything
    else is treated as a static asset.

    Examples:
    --------
    >>> options = WorkerOptions()
    >>> classify("POST", "https://api.open-meteo.com/v1/forecast", options)
    <Strategy.BYPASS: 'bypass'>
    >>> classify("GET", "https://api.open-meteo.com/v1/forecast", options)
    <Strategy.NETWORK_FIRST: 'network-first'>
    >>> classify("GET", "/styles/app.css", options)
    <Strategy.CACHE_FIRST: 'cache-first'>
    """
    if method.upper() != "GET":
        return Strategy.BYPASS

    if any(pattern in url for pattern in options.network_first_patterns):
        return Strategy.NETWORK_FIRST

    return Strategy.CACHE_FIRST


def is_cacheable_asset(url: str, extensions: Iterable[str]) -> bool:
    """
    Whether the URL points to a static asset type that may be stored.

    The query string is ignored, so "/app.js?v=2" is a script.
    """
    path = url_path(url).lower()
    return any(path.endswith(extension.lower()) for extension in extensions)
