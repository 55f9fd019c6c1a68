"""HTTP GET capability for catalog and package downloads."""

from __future__ import annotations

import json
from typing import Any, Protocol, runtime_checkable

import httpx

from vault_extensions.constants import DEFAULT_REQUEST_TIMEOUT_SECONDS
from vault_extensions.core.exceptions import TransportError
from vault_extensions.core.logging.logger import get_logger

logger = get_logger(__name__)

_MARKUP_SNIFF_BYTES = 512


@runtime_checkable
class Downloader(Protocol):
    async def get_json(self, url: str) -> Any:
        """GET ``url`` and decode a JSON body; raises TransportError."""
        ...

    async def get_file(self, url: str) -> bytes:
        """GET ``url`` and return the body; raises TransportError."""
        ...


def looks_like_markup(content: bytes) -> bool:
    """True when a body starts with ``<`` (an HTML error page, not a package file)."""
    head = content[:_MARKUP_SNIFF_BYTES].lstrip(b"\xef\xbb\xbf").lstrip()
    return head.startswith(b"<")


class HttpDownloader:
    """
    Downloader backed by ``httpx.AsyncClient``.

    A client passed in is borrowed and never closed here; without one, each
    request opens a short-lived client with the configured timeout.
    """

    def __init__(
        self,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
    ) -> None:
        self._client = client
        self._timeout = timeout

    async def _get(self, url: str) -> httpx.Response:
        try:
            if self._client is not None:
                response = await self._client.get(url, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(
                    timeout=self._timeout, follow_redirects=True
                ) as client:
                    response = await client.get(url)
        except httpx.TimeoutException as exc:
            raise TransportError(f"Request timed out: {url}", url=url) from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"Request failed: {url} ({exc})", url=url) from exc

        if not response.is_success:
            raise TransportError(
                f"HTTP {response.status_code} fetching {url}",
                url=url,
                status_code=response.status_code,
            )
        return response

    async def get_json(self, url: str) -> Any:
        response = await self._get(url)
        try:
            return json.loads(response.content)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise TransportError(f"Malformed JSON from {url}: {exc}", url=url) from exc

    async def get_file(self, url: str) -> bytes:
        response = await self._get(url)
        content = response.content
        if looks_like_markup(content):
            logger.warning(
                "Download returned markup instead of file content",
                data={"url": url, "status": response.status_code},
            )
            raise TransportError(
                f"Download of {url} returned an HTML page instead of file content",
                url=url,
                status_code=response.status_code,
            )
        logger.debug("Downloaded file", data={"url": url, "bytes": len(content)})
        return content
