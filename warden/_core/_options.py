from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_GENERATION = "warden-v1"
DEFAULT_MANIFEST = ("/", "/index.html", "/manifest.json")
DEFAULT_NETWORK_FIRST_PATTERNS = ("api.open-meteo.com", "metals", "spot")
DEFAULT_CACHEABLE_EXTENSIONS = (".css", ".js", ".json")


@dataclass
class WorkerOptions:
    """
    Configuration for the interception cache.

    All values are fixed at deployment time. The same options object is
    passed to the lifecycle manager, the strategy engine and the hooks, so
    they always agree on which cache generation is current.

    Attributes:
    ----------
    generation : str
        Name of the current cache generation. Bumping it in a new
        deployment makes every other generation stale, and the next
        activation deletes them.

        Examples:
        --------
        >>> options = WorkerOptions(generation="odeon-v2")

    manifest : tuple[str, ...]
        Paths pre-cached on install, in order. Each path is resolved
        against `base_url`.

    base_url : str
        Origin the manifest paths and the navigation fallback ("/") are
        resolved against. Empty means paths are used as-is.

        Examples:
        --------
        >>> options = WorkerOptions(base_url="https://odeon.app")

    network_first_patterns : tuple[str, ...]
        Substrings that mark a GET URL as a live-data endpoint. Matching
        requests use the network-first strategy; every other GET uses
        cache-first.

    cacheable_extensions : tuple[str, ...]
        URL path suffixes of static assets that cache-first stores after a
        successful network fetch.
    """

    generation: str = DEFAULT_GENERATION
    """Name of the current cache generation."""

    manifest: tuple[str, ...] = DEFAULT_MANIFEST
    """Paths pre-cached on install."""

    base_url: str = ""
    """Origin used to resolve manifest paths and the root fallback."""

    network_first_patterns: tuple[str, ...] = DEFAULT_NETWORK_FIRST_PATTERNS
    """URL substrings that select the network-first strategy."""

    cacheable_extensions: tuple[str, ...] = DEFAULT_CACHEABLE_EXTENSIONS
    """URL path suffixes cache-first is allowed to store."""

    sync_tag: str = "sync-alerts"
    """Background-sync tag the sync hook reacts to."""

    notification_title: str = "ODEON Alert"
    """Title of push notifications."""

    notification_tag: str = "odeon-alert"
    """Grouping tag, so a new notification replaces the previous one."""

    max_background_writes: int = field(default=16)
    """How many opportunistic cache writes may run at the same time."""

    def __post_init__(self) -> None:
        if not self.generation:
            raise ValueError("generation must be a non-empty string")
        if self.max_background_writes <= 0:
            raise ValueError("max_background_writes must be positive")
