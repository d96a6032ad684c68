from datetime import datetime
from zoneinfo import ZoneInfo

import httpx
import pytest
from httpx import MockTransport
from inline_snapshot import snapshot
from time_machine import travel

from warden import OFFLINE_HTML, AsyncSqliteStorage, InstallEvent, WorkerOptions
from warden.httpx import AsyncCacheClient, AsyncCacheTransport
from tests.conftest import RecordingHost, cached_body, seed_entry

FORECAST_URL = "https://api.open-meteo.com/v1/forecast?latitude=52.52"


class Upstream:
    def __init__(self) -> None:
        self.online = True
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.online:
            raise httpx.ConnectError("network is down", request=request)
        if request.method == "POST":
            return httpx.Response(201, content=b"created")
        if request.url.path == "/missing":
            return httpx.Response(404, content=b"not found")
        return httpx.Response(
            200,
            headers={"Content-Type": "text/plain"},
            content=f"live {request.url.path}".encode(),
        )


@pytest.fixture()
def upstream() -> Upstream:
    return Upstream()


@pytest.mark.anyio
@travel(datetime(2024, 1, 1, 0, 0, 0, tzinfo=ZoneInfo("UTC")), tick=False)
async def test_network_first_through_client(
    storage: AsyncSqliteStorage, upstream: Upstream, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level("DEBUG", logger="warden.worker"):
        # Leaving the client waits for the background write
        async with httpx.AsyncClient(transport=AsyncCacheTransport(MockTransport(upstream), storage=storage)) as client:
            live = await client.get(FORECAST_URL)

        upstream.online = False
        async with httpx.AsyncClient(transport=AsyncCacheTransport(MockTransport(upstream), storage=storage)) as client:
            cached = await client.get(FORECAST_URL)

    assert live.text == "live /v1/forecast"
    assert live.extensions == snapshot(
        {
            "warden_from_cache": False,
            "warden_stored": True,
            "warden_offline": False,
            "warden_strategy": "network-first",
        }
    )
    assert cached.status_code == 200
    assert cached.text == "live /v1/forecast"
    assert cached.headers["content-type"] == "text/plain"
    assert cached.extensions == snapshot(
        {
            "warden_from_cache": True,
            "warden_created_at": 1704067200.0,
            "warden_stored": False,
            "warden_offline": False,
            "warden_strategy": "network-first",
        }
    )
    assert caplog.messages == snapshot(
        [
            "Handling request with strategy: network-first",
            "Storing response in cache",
            "Handling request with strategy: network-first",
            "Network request failed: ConnectError('network is down')",
            "Serving response from cache",
        ]
    )


@pytest.mark.anyio
async def test_bypassed_requests_reach_the_network_untouched(storage: AsyncSqliteStorage, upstream: Upstream) -> None:
    transport = AsyncCacheTransport(next_transport=MockTransport(upstream), storage=storage)

    async with httpx.AsyncClient(transport=transport) as client:
        response = await client.post("https://odeon.app/alerts", content=b"{}")
        assert response.status_code == 201
        assert "warden_strategy" not in response.extensions

        upstream.online = False
        with pytest.raises(httpx.ConnectError):
            await client.post("https://odeon.app/alerts", content=b"{}")

    assert await cached_body(storage, "https://odeon.app/alerts") is None


@pytest.mark.anyio
async def test_offline_style_request_gets_offline_page(storage: AsyncSqliteStorage, upstream: Upstream) -> None:
    upstream.online = False
    transport = AsyncCacheTransport(next_transport=MockTransport(upstream), storage=storage)

    async with httpx.AsyncClient(transport=transport) as client:
        response = await client.get("https://odeon.app/styles/app.css", headers={"Sec-Fetch-Dest": "style"})

    assert response.status_code == 503
    assert response.headers["content-type"] == "text/html"
    assert response.text == OFFLINE_HTML
    assert response.extensions["warden_offline"] is True


@pytest.mark.anyio
async def test_offline_navigation_gets_cached_root(storage: AsyncSqliteStorage, upstream: Upstream) -> None:
    options = WorkerOptions(base_url="https://odeon.app")
    transport = AsyncCacheTransport(next_transport=MockTransport(upstream), storage=storage, options=options)

    async with httpx.AsyncClient(transport=transport) as client:
        await transport.dispatcher.dispatch(InstallEvent())
        upstream.online = False
        response = await client.get("https://odeon.app/settings", extensions={"warden_destination": "document"})

    assert response.status_code == 200
    assert response.text == "live /"
    assert response.extensions["warden_from_cache"] is True


@pytest.mark.anyio
async def test_cache_first_assets_are_served_without_network(
    storage: AsyncSqliteStorage, upstream: Upstream
) -> None:
    async with httpx.AsyncClient(transport=AsyncCacheTransport(MockTransport(upstream), storage=storage)) as client:
        first = await client.get("https://odeon.app/js/app.js")
        missing = await client.get("https://odeon.app/missing")

    async with httpx.AsyncClient(transport=AsyncCacheTransport(MockTransport(upstream), storage=storage)) as client:
        second = await client.get("https://odeon.app/js/app.js")

    assert first.extensions["warden_from_cache"] is False
    assert second.extensions["warden_from_cache"] is True
    assert second.text == "live /js/app.js"
    assert missing.status_code == 404
    assert [request.url.path for request in upstream.requests] == ["/js/app.js", "/missing"]
    assert missing.extensions["warden_stored"] is False


@pytest.mark.anyio
async def test_install_through_transport(storage: AsyncSqliteStorage, upstream: Upstream) -> None:
    host = RecordingHost()
    options = WorkerOptions(base_url="https://odeon.app")
    transport = AsyncCacheTransport(next_transport=MockTransport(upstream), storage=storage, options=options, host=host)

    async with transport:
        cached = await transport.dispatcher.dispatch(InstallEvent())

    assert cached == ["/", "/index.html", "/manifest.json"]
    assert host.signals == ["skip-waiting"]
    assert await cached_body(storage, "https://odeon.app/manifest.json") == b"live /manifest.json"


@pytest.mark.anyio
async def test_client_builds_cache_transport(storage: AsyncSqliteStorage) -> None:
    client = AsyncCacheClient(storage=storage, options=WorkerOptions(generation="odeon-v3"))

    assert isinstance(client._transport, AsyncCacheTransport)
    assert client._transport.storage is storage
    assert client._transport.options.generation == "odeon-v3"
    await client.aclose()


@pytest.mark.anyio
async def test_install_without_base_url_is_refused(storage: AsyncSqliteStorage, upstream: Upstream) -> None:
    host = RecordingHost()
    transport = AsyncCacheTransport(next_transport=MockTransport(upstream), storage=storage, host=host)

    async with transport:
        with pytest.raises(ValueError, match="set WorkerOptions.base_url"):
            await transport.dispatcher.dispatch(InstallEvent())

    assert upstream.requests == []
    assert host.signals == []


@pytest.mark.anyio
async def test_offline_navigation_with_default_options(storage: AsyncSqliteStorage, upstream: Upstream) -> None:
    await seed_entry(storage, "https://odeon.app/", b"<html>home</html>")
    upstream.online = False

    async with httpx.AsyncClient(transport=AsyncCacheTransport(MockTransport(upstream), storage=storage)) as client:
        navigation = await client.get("https://odeon.app/settings", headers={"Sec-Fetch-Dest": "document"})
        other_origin = await client.get("https://other.example/settings", headers={"Sec-Fetch-Dest": "document"})

    assert navigation.status_code == 200
    assert navigation.text == "<html>home</html>"
    assert navigation.extensions["warden_from_cache"] is True
    assert other_origin.status_code == 503
