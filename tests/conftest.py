from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import anysqlite
import pytest

from warden import (
    AsyncSqliteCache,
    AsyncSqliteStorage,
    BaseHost,
    BaseNotificationSink,
    Headers,
    Notification,
    Request,
    Response,
)
from warden._utils import make_async_iterator, make_cache_key


def format_value(value: Any, col_name: str, col_type: str) -> str:
    """Format a value for display based on its type and column name."""

    if value is None:
        return "NULL"

    # Packed entries are not stable across msgpack versions, only show that they exist
    if col_type.upper() == "BLOB":
        return "<blob>"

    # Handle timestamps - ONLY show date, not the raw timestamp
    if col_name.endswith("_at") and isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc).date().isoformat()
        except (ValueError, OSError):
            return str(value)

    # Handle TEXT columns
    if col_type.upper() == "TEXT":
        return f"'{value}'"

    # Handle other types
    return str(value)


async def aprint_sqlite_state(conn: anysqlite.Connection) -> str:
    """
    Print all tables and their rows in a pretty format suitable for inline snapshots.

    Args:
        conn: SQLite database connection

    Returns:
        Formatted string representation of the database state
    """
    cursor = await conn.cursor()

    # Get all table names
    await cursor.execute("SELECT name FROM sqlite_master WHERE type='table' ORDER BY name")
    tables = [row[0] for row in await cursor.fetchall()]

    output_lines = []
    output_lines.append("=" * 80)
    output_lines.append("DATABASE SNAPSHOT")
    output_lines.append("=" * 80)

    for table_name in tables:
        # Get column information
        await cursor.execute(f"PRAGMA table_info({table_name})")
        columns = await cursor.fetchall()
        column_names = [col[1] for col in columns]
        column_types = {col[1]: col[2] for col in columns}

        # Get all rows, ordered so the snapshot is stable
        await cursor.execute(f"SELECT * FROM {table_name} ORDER BY 1, 2")
        rows = await cursor.fetchall()

        output_lines.append("")
        output_lines.append(f"TABLE: {table_name}")
        output_lines.append("-" * 80)
        output_lines.append(f"Rows: {len(rows)}")
        output_lines.append("")

        if not rows:
            output_lines.append("  (empty)")
            continue

        # Format each row
        for idx, row in enumerate(rows, 1):
            output_lines.append(f"  Row {idx}:")

            for col_name, value in zip(column_names, row):
                col_type = column_types[col_name]
                formatted_value = format_value(value, col_name, col_type)
                output_lines.append(f"    {col_name:15} = {formatted_value}")

            if idx < len(rows):
                output_lines.append("")

    output_lines.append("")
    output_lines.append("=" * 80)

    result = "\n".join(output_lines)
    return result


class MockNetwork:
    """
    Request sender serving canned responses by URL.

    Unknown URLs, and every URL once `offline` is set, fail the way an
    unreachable network does.
    """

    def __init__(self) -> None:
        self.responses: Dict[str, Tuple[int, bytes, Dict[str, str]]] = {}
        self.calls: List[str] = []
        self.offline = False

    def add(self, url: str, body: bytes = b"", status_code: int = 200, headers: Optional[Dict[str, str]] = None) -> None:
        self.responses[url] = (status_code, body, headers or {})

    async def __call__(self, request: Request) -> Response:
        self.calls.append(request.url)
        if self.offline:
            raise ConnectionError("network is down")
        if request.url not in self.responses:
            raise ConnectionError(f"unreachable: {request.url}")
        status_code, body, headers = self.responses[request.url]
        return Response(
            status_code=status_code,
            headers=Headers(headers),
            stream=make_async_iterator([body]),
        )


class RecordingHost(BaseHost):
    def __init__(self) -> None:
        self.signals: List[str] = []

    async def skip_waiting(self) -> None:
        self.signals.append("skip-waiting")

    async def claim_clients(self) -> None:
        self.signals.append("claim-clients")


class RecordingNotificationSink(BaseNotificationSink):
    def __init__(self) -> None:
        self.shown: List[Notification] = []

    async def show_notification(self, notification: Notification) -> None:
        self.shown.append(notification)


class BrokenWritesCache(AsyncSqliteCache):
    async def put(self, key: str, request: Request, response: Response) -> Any:
        raise RuntimeError("disk full")


class BrokenWritesStorage(AsyncSqliteStorage):
    async def open(self, name: str) -> AsyncSqliteCache:
        cache = await super().open(name)
        return BrokenWritesCache(self, cache.name)


class BrokenReadsCache(AsyncSqliteCache):
    async def match(self, key: str) -> Any:
        raise RuntimeError("database is locked")


class BrokenReadsStorage(AsyncSqliteStorage):
    async def open(self, name: str) -> AsyncSqliteCache:
        cache = await super().open(name)
        return BrokenReadsCache(self, cache.name)


async def seed_entry(
    storage: AsyncSqliteStorage,
    url: str,
    body: bytes,
    generation: str = "warden-v1",
    status_code: int = 200,
    headers: Optional[Dict[str, str]] = None,
) -> None:
    cache = await storage.open(generation)
    await cache.put(
        make_cache_key(url),
        Request(method="GET", url=url),
        Response(status_code=status_code, headers=Headers(headers or {}), stream=make_async_iterator([body])),
    )


async def cached_body(storage: AsyncSqliteStorage, url: str, generation: str = "warden-v1") -> Optional[bytes]:
    # Reads without open(), which would register the generation
    cache = AsyncSqliteCache(storage, generation)
    entry = await cache.match(make_cache_key(url))
    if entry is None:
        return None
    return await entry.response.aread()


@pytest.fixture()
def storage(tmp_path) -> AsyncSqliteStorage:
    return AsyncSqliteStorage(database_path=tmp_path / "warden_cache.db")


@pytest.fixture()
def network() -> MockNetwork:
    return MockNetwork()
