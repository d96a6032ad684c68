from __future__ import annotations

import hashlib
import typing as tp
from pathlib import Path
from typing import AsyncIterator, Iterable
from urllib.parse import urljoin, urlsplit

T = tp.TypeVar("T")


async def make_async_iterator(
    iterable: Iterable[bytes],
) -> AsyncIterator[bytes]:
    for item in iterable:
        yield item


def filter_mapping(mapping: tp.Mapping[str, T], keys_to_exclude: tp.Iterable[str]) -> tp.Dict[str, T]:
    """
    Filter out specified keys from a string-keyed mapping using case-insensitive comparison.

    Args:
        mapping: The input mapping with string keys to filter.
        keys_to_exclude: An iterable of string keys to exclude (case-insensitive).

    Returns:
        A new dictionary with the specified keys excluded.

    Example:
    ```python
        original = {'a': 1, 'B': 2, 'c': 3}
        filtered = filter_mapping(original, ['b'])
        # filtered will be {'a': 1, 'c': 3}
    ```
    """
    exclude_set = {k.lower() for k in keys_to_exclude}
    return {k: v for k, v in mapping.items() if k.lower() not in exclude_set}


def make_cache_key(url: str) -> str:
    """
    Normalized identity of a cacheable request.

    Only GET requests are ever stored, so the method is part of the key
    but never varies.
    """
    return hashlib.sha256(f"GET {url}".encode("utf-8")).hexdigest()


def url_path(url: str) -> str:
    """
    The path component of a URL, without query string or fragment.

    Examples:
        >>> url_path("https://example.com/app.css?v=3")
        '/app.css'
        >>> url_path("/styles/app.css")
        '/styles/app.css'
    """
    return urlsplit(url).path


def resolve_url(base_url: str, path: str) -> str:
    if not base_url:
        return path
    return urljoin(base_url, path)


def ensure_cache_dict(base_path: Path | None = None) -> Path:
    _base_path = base_path if base_path is not None else Path(".cache/warden")
    _gitignore_file = _base_path / ".gitignore"

    _base_path.mkdir(parents=True, exist_ok=True)

    if not _gitignore_file.is_file():
        with open(_gitignore_file, "w", encoding="utf-8") as f:
            f.write("# Automatically created by Warden\n*")
    return _base_path
