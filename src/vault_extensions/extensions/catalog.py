"""
Catalog cache: fetches the remote extension manifest and keeps it for a TTL.

A fresh cache is served without network access. When a refresh fails the
previous manifest is served instead, however old, and the user is told the
catalog may be out of date. Only a failed fetch with nothing cached raises.
"""

from __future__ import annotations

import time
from datetime import UTC, datetime
from typing import Callable, Iterable

from vault_extensions.constants import DEFAULT_CACHE_TTL_SECONDS
from vault_extensions.core.exceptions import CatalogUnavailableError, ExtensionsError
from vault_extensions.core.logging.logger import get_logger
from vault_extensions.extensions.downloader import Downloader
from vault_extensions.extensions.notifications import LoggingNotifier, Notifier
from vault_extensions.extensions.types import (
    BrowseFilter,
    CacheStatus,
    CatalogManifest,
    MarketplaceExtension,
    parse_catalog_payload,
)

logger = get_logger(__name__)


class ExtensionCatalog:
    def __init__(
        self,
        endpoint: str,
        *,
        downloader: Downloader,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        notifier: Notifier | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._endpoint = endpoint
        self._downloader = downloader
        self._ttl_seconds = ttl_seconds
        self._notifier = notifier or LoggingNotifier()
        self._clock = clock
        self._cached: CatalogManifest | None = None
        self._fetched_at: float | None = None

    @property
    def endpoint(self) -> str:
        return self._endpoint

    def _is_fresh(self) -> bool:
        if self._cached is None or self._fetched_at is None:
            return False
        return self._clock() - self._fetched_at < self._ttl_seconds

    async def fetch_catalog(self) -> CatalogManifest:
        """Return the manifest, from cache when fresh, else from the endpoint."""
        if self._is_fresh():
            assert self._cached is not None
            return self._cached

        try:
            payload = await self._downloader.get_json(self._endpoint)
            manifest = parse_catalog_payload(payload)
        except ExtensionsError as exc:
            return self._fallback(exc.message)
        except Exception as exc:
            logger.exception("Unexpected error fetching catalog", data={"url": self._endpoint})
            return self._fallback(str(exc))

        self._cached = manifest
        self._fetched_at = self._clock()
        logger.info(
            "Catalog fetched",
            data={
                "url": self._endpoint,
                "extensions": len(manifest.available_extensions),
                "schema_version": manifest.schema_version,
            },
        )
        return manifest

    def _fallback(self, reason: str) -> CatalogManifest:
        if self._cached is not None:
            logger.warning(
                "Catalog fetch failed, serving cached catalog",
                data={"url": self._endpoint, "reason": reason},
            )
            self._notifier.notify(
                f"Using cached catalog (network unavailable: {reason})", level="warning"
            )
            return self._cached

        logger.error(
            "Catalog fetch failed with no cache", data={"url": self._endpoint, "reason": reason}
        )
        raise CatalogUnavailableError(
            f"Failed to fetch catalog and no cache available: {reason}",
            url=self._endpoint,
        )

    async def search_extensions(
        self,
        criteria: BrowseFilter | None = None,
        *,
        installed_ids: Iterable[str] | None = None,
    ) -> list[MarketplaceExtension]:
        """
        Filter catalog extensions. All given criteria must match.

        Args:
            criteria: text, kind, category and installed-only filters
            installed_ids: ids treated as installed for ``show_only_installed``

        Returns:
            Matching extensions in catalog order
        """
        manifest = await self.fetch_catalog()
        criteria = criteria or BrowseFilter()
        results = list(manifest.available_extensions)

        query = (criteria.text_query or "").strip().lower()
        if query:
            results = [ext for ext in results if _matches_text(ext, query)]

        if criteria.filter_by_kind:
            results = [ext for ext in results if ext.kind == criteria.filter_by_kind]

        if criteria.filter_by_categories:
            wanted = set(criteria.filter_by_categories)
            results = [
                ext for ext in results if any(cat in wanted for cat in ext.classification_tags)
            ]

        if criteria.show_only_installed and installed_ids is not None:
            installed = set(installed_ids)
            results = [ext for ext in results if ext.unique_id in installed]

        return results

    async def get_extension(self, extension_id: str) -> MarketplaceExtension | None:
        manifest = await self.fetch_catalog()
        for extension in manifest.available_extensions:
            if extension.unique_id == extension_id:
                return extension
        return None

    async def get_featured(self) -> list[MarketplaceExtension]:
        manifest = await self.fetch_catalog()
        highlighted = set(manifest.highlighted_extensions)
        return [ext for ext in manifest.available_extensions if ext.unique_id in highlighted]

    async def get_categories(self) -> list[str]:
        manifest = await self.fetch_catalog()
        return list(manifest.known_categories)

    def clear_cache(self) -> None:
        self._cached = None
        self._fetched_at = None
        logger.debug("Catalog cache cleared", data={"url": self._endpoint})

    def get_cache_status(self) -> CacheStatus:
        if self._cached is None or self._fetched_at is None:
            return CacheStatus(last_fetched_at=None, is_stale=True)
        return CacheStatus(
            last_fetched_at=datetime.fromtimestamp(self._fetched_at, UTC),
            is_stale=not self._is_fresh(),
        )


def _matches_text(extension: MarketplaceExtension, query: str) -> bool:
    if query in extension.display_title.lower():
        return True
    if query in extension.brief_summary.lower():
        return True
    if any(query in keyword.lower() for keyword in extension.search_keywords):
        return True
    return any(query in category.lower() for category in extension.classification_tags)
