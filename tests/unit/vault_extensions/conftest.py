from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import pytest

from vault_extensions.core.exceptions import TransportError
from vault_extensions.extensions.conflicts import ConflictDecision
from vault_extensions.extensions.content_store import LocalContentStore
from vault_extensions.extensions.notifications import RecordingNotifier
from vault_extensions.extensions.tracking import TrackingStore
from vault_extensions.extensions.types import MarketplaceExtension, PackagedFile

BASE_URL = "https://example.test/packages"


class FakeDownloader:
    """In-memory downloader keyed by URL; unknown URLs fail like a 404."""

    def __init__(self) -> None:
        self.files: dict[str, bytes] = {}
        self.json: dict[str, Any] = {}
        self.requests: list[str] = []

    async def get_json(self, url: str) -> Any:
        self.requests.append(url)
        if url not in self.json:
            raise TransportError(f"HTTP 404 fetching {url}", url=url, status_code=404)
        return self.json[url]

    async def get_file(self, url: str) -> bytes:
        self.requests.append(url)
        if url not in self.files:
            raise TransportError(f"HTTP 404 fetching {url}", url=url, status_code=404)
        return self.files[url]


class ScriptedResolver:
    """Conflict resolver returning queued decisions and remembering what it was asked."""

    def __init__(self, *decisions: ConflictDecision) -> None:
        self._decisions = list(decisions)
        self.asked: list[str] = []

    async def resolve_conflict(self, existing_path: str) -> ConflictDecision:
        self.asked.append(existing_path)
        if not self._decisions:
            return ConflictDecision.cancel()
        return self._decisions.pop(0)


@pytest.fixture
def vault_root(tmp_path: Path) -> Path:
    root = tmp_path / "vault"
    root.mkdir()
    return root


@pytest.fixture
def content_store(vault_root: Path) -> LocalContentStore:
    return LocalContentStore(vault_root)


@pytest.fixture
def tracking_store(content_store: LocalContentStore) -> TrackingStore:
    return TrackingStore(content_store)


@pytest.fixture
def downloader() -> FakeDownloader:
    return FakeDownloader()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def make_extension(downloader: FakeDownloader) -> Callable[..., MarketplaceExtension]:
    """Build an extension and register its file contents with the fake downloader."""

    def _make(
        extension_id: str,
        version: str = "1.0.0",
        *,
        files: dict[str, str] | None = None,
        depends_on: tuple[str, ...] = (),
        kind: str = "agent",
    ) -> MarketplaceExtension:
        if files is None:
            files = {f"Reference/Agents/{extension_id}.agent.md": f"# {extension_id} v{version}\n"}
        contents = []
        for target, body in files.items():
            url = f"{BASE_URL}/{extension_id}/{version}/{Path(target).name}"
            downloader.files[url] = body.encode("utf-8")
            contents.append(
                PackagedFile(
                    relative_path=Path(target).name,
                    download_source=url,
                    target_location=target,
                )
            )
        return MarketplaceExtension(
            unique_id=extension_id,
            display_title=extension_id.replace("-", " ").title(),
            kind=kind,  # type: ignore[arg-type]
            semantic_version=version,
            package_contents=tuple(contents),
            depends_on_extensions=depends_on,
        )

    return _make


@pytest.fixture
def scripted_resolver() -> type[ScriptedResolver]:
    return ScriptedResolver


@pytest.fixture
def make_manager(
    content_store: LocalContentStore,
    tracking_store: TrackingStore,
    downloader: FakeDownloader,
    notifier: RecordingNotifier,
) -> Callable[..., Any]:
    """Build an initialized manager over the temporary vault."""
    from vault_extensions.extensions.conflicts import CancelConflictResolver
    from vault_extensions.extensions.manager import ExtensionManager

    async def _make(resolver: Any = None, **kwargs: Any) -> ExtensionManager:
        manager = ExtensionManager(
            content_store,
            tracking_store,
            downloader,
            resolver or CancelConflictResolver(),
            notifier=notifier,
            **kwargs,
        )
        await manager.initialize()
        return manager

    return _make
