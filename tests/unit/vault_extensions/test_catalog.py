"""Tests for the catalog cache."""

import httpx
import pytest
import pytest_asyncio

from vault_extensions.core.exceptions import CatalogUnavailableError
from vault_extensions.extensions.catalog import ExtensionCatalog
from vault_extensions.extensions.downloader import HttpDownloader
from vault_extensions.extensions.notifications import RecordingNotifier
from vault_extensions.extensions.types import BrowseFilter

CATALOG_URL = "https://example.test/catalog.json"


def _entry(extension_id, kind="agent", version="1.0.0", **extra):
    return {
        "id": extension_id,
        "name": extra.pop("name", extension_id.replace("-", " ").title()),
        "type": kind,
        "version": version,
        "description": extra.pop("description", ""),
        "categories": extra.pop("categories", []),
        "tags": extra.pop("tags", []),
        "files": [
            {
                "source": f"{extension_id}.md",
                "downloadUrl": f"https://example.test/{extension_id}.md",
                "installPath": "Reference/",
            }
        ],
        **extra,
    }


CATALOG = {
    "version": "1.0",
    "generated": "2026-01-05T10:00:00Z",
    "extensions": [
        _entry(
            "daily-journal",
            description="Write a journal entry every day",
            categories=["Productivity"],
            tags=["journal"],
        ),
        _entry("meeting-notes", kind="prompt", categories=["Productivity", "Work"], tags=["notes"]),
        _entry("voice-coach", kind="voice-agent", description="Speak with a Coach"),
        _entry("web-search", kind="mcp-server", categories=["Research"]),
    ],
    "categories": ["Productivity", "Research", "Work"],
    "featured": ["web-search", "daily-journal", "unknown"],
}


class FakeClock:
    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now


class CatalogServer:
    """MockTransport handler that can be switched to failing."""

    def __init__(self, payload=CATALOG) -> None:
        self.payload = payload
        self.failure: Exception | None = None
        self.status = 200
        self.calls = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        if self.failure is not None:
            raise self.failure
        return httpx.Response(self.status, json=self.payload)


@pytest.fixture
def server() -> CatalogServer:
    return CatalogServer()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def catalog(server, clock, notifier: RecordingNotifier):
    async with httpx.AsyncClient(transport=httpx.MockTransport(server)) as client:
        yield ExtensionCatalog(
            CATALOG_URL,
            downloader=HttpDownloader(client=client),
            ttl_seconds=300,
            notifier=notifier,
            clock=clock,
        )


@pytest.mark.asyncio
async def test_fresh_cache_skips_network(catalog, server, clock):
    first = await catalog.fetch_catalog()
    clock.now += 299
    second = await catalog.fetch_catalog()

    assert first is second
    assert server.calls == 1
    assert len(first.available_extensions) == 4


@pytest.mark.asyncio
async def test_expired_cache_refetches(catalog, server, clock):
    await catalog.fetch_catalog()
    clock.now += 300
    assert catalog.get_cache_status().is_stale

    await catalog.fetch_catalog()
    assert server.calls == 2
    assert not catalog.get_cache_status().is_stale


@pytest.mark.asyncio
async def test_stale_cache_served_when_network_fails(catalog, server, clock, notifier):
    cached = await catalog.fetch_catalog()
    clock.now += 3600
    server.failure = httpx.ConnectError("network down")

    assert await catalog.fetch_catalog() is cached
    assert len(notifier.notices) == 1
    level, message = notifier.notices[0]
    assert level == "warning"
    assert message.startswith("Using cached catalog (network unavailable:")


@pytest.mark.asyncio
async def test_stale_cache_served_on_http_error_and_invalid_payload(catalog, server, clock):
    cached = await catalog.fetch_catalog()

    clock.now += 301
    server.status = 503
    assert await catalog.fetch_catalog() is cached

    clock.now += 301
    server.status = 200
    server.payload = {"version": "1.0", "extensions": "broken"}
    assert await catalog.fetch_catalog() is cached


@pytest.mark.asyncio
async def test_failure_without_cache_raises(catalog, server):
    server.failure = httpx.ConnectError("network down")

    with pytest.raises(CatalogUnavailableError, match="Failed to fetch catalog and no cache available"):
        await catalog.fetch_catalog()


@pytest.mark.asyncio
async def test_invalid_payload_without_cache_raises(catalog, server):
    server.payload = {"version": "1.0", "generated": "now", "extensions": [{"id": "x"}]}

    with pytest.raises(CatalogUnavailableError, match="Invalid catalog format"):
        await catalog.fetch_catalog()


@pytest.mark.asyncio
async def test_clear_cache_forces_network(catalog, server):
    await catalog.fetch_catalog()
    catalog.clear_cache()

    assert catalog.get_cache_status().last_fetched_at is None
    await catalog.fetch_catalog()
    assert server.calls == 2


@pytest.mark.asyncio
async def test_cache_status_without_cache(catalog):
    status = catalog.get_cache_status()
    assert status.last_fetched_at is None
    assert status.is_stale


@pytest.mark.asyncio
async def test_cache_status_after_fetch(catalog, clock):
    await catalog.fetch_catalog()
    status = catalog.get_cache_status()
    assert status.last_fetched_at is not None
    assert status.last_fetched_at.timestamp() == pytest.approx(clock.now)
    assert not status.is_stale


class TestSearch:
    @pytest.mark.asyncio
    async def test_empty_filter_returns_everything(self, catalog):
        results = await catalog.search_extensions(BrowseFilter())
        assert [ext.unique_id for ext in results] == [
            "daily-journal",
            "meeting-notes",
            "voice-coach",
            "web-search",
        ]

    @pytest.mark.asyncio
    async def test_text_query_matches_title_summary_tags_and_categories(self, catalog):
        async def ids(query):
            return [ext.unique_id for ext in await catalog.search_extensions(BrowseFilter(text_query=query))]

        assert await ids("  JOURNAL ") == ["daily-journal"]
        assert await ids("coach") == ["voice-coach"]
        assert await ids("notes") == ["meeting-notes"]
        assert await ids("research") == ["web-search"]
        assert await ids("   ") == ["daily-journal", "meeting-notes", "voice-coach", "web-search"]

    @pytest.mark.asyncio
    async def test_kind_and_category_filters_are_conjunctive(self, catalog):
        results = await catalog.search_extensions(
            BrowseFilter(filter_by_kind="prompt", filter_by_categories=("Productivity",))
        )
        assert [ext.unique_id for ext in results] == ["meeting-notes"]

        results = await catalog.search_extensions(
            BrowseFilter(filter_by_kind="agent", filter_by_categories=("Work",))
        )
        assert results == []

    @pytest.mark.asyncio
    async def test_categories_match_any(self, catalog):
        results = await catalog.search_extensions(
            BrowseFilter(filter_by_categories=("Work", "Research"))
        )
        assert [ext.unique_id for ext in results] == ["meeting-notes", "web-search"]

    @pytest.mark.asyncio
    async def test_installed_only(self, catalog):
        results = await catalog.search_extensions(
            BrowseFilter(show_only_installed=True), installed_ids=["web-search"]
        )
        assert [ext.unique_id for ext in results] == ["web-search"]


@pytest.mark.asyncio
async def test_featured_in_catalog_order(catalog):
    featured = await catalog.get_featured()
    assert [ext.unique_id for ext in featured] == ["daily-journal", "web-search"]


@pytest.mark.asyncio
async def test_get_extension_and_categories(catalog):
    extension = await catalog.get_extension("web-search")
    assert extension is not None
    assert extension.kind == "mcp-server"
    assert extension.package_contents[0].target_location == "Reference/web-search.md"
    assert await catalog.get_extension("missing") is None
    assert await catalog.get_categories() == ["Productivity", "Research", "Work"]
