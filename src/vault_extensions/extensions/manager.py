"""
Extension manager: install, uninstall and update extensions in a content store.

The manager owns the in-memory ledger of installed extensions. The ledger is
loaded once by ``initialize()`` and written back after every mutation.

Public operations never raise for expected failures. They return an
``InstallationOutcome`` whose ``error_details`` carries the reason, and the
reason is logged and sent to the notifier.
"""

from __future__ import annotations

from typing import Iterable

from vault_extensions.constants import DEFAULT_MAX_DEPENDENCY_DEPTH
from vault_extensions.core.exceptions import (
    ContentPathError,
    ExtensionsError,
    ExtensionValidationError,
    FilesystemConflictError,
    InstallCancelledError,
    PersistenceError,
)
from vault_extensions.core.logging.logger import get_logger
from vault_extensions.extensions.conflicts import ConflictResolver
from vault_extensions.extensions.content_store import ContentStore, normalize_content_path
from vault_extensions.extensions.downloader import Downloader
from vault_extensions.extensions.notifications import LoggingNotifier, Notifier
from vault_extensions.extensions.tracking import TrackingStore
from vault_extensions.extensions.types import (
    InstallationOutcome,
    LocalExtensionRecord,
    MarketplaceExtension,
    PackagedFile,
    UpdateNotification,
    utc_now_iso,
)
from vault_extensions.extensions.versions import is_newer_version

logger = get_logger(__name__)


class ExtensionManager:
    """
    Orchestrates extension lifecycle against injected collaborators.

    Args:
        content_store: where package files are written
        tracking_store: persistence for the installed-extension ledger
        downloader: fetches package files
        conflict_resolver: decides what to do when a target file already exists
        notifier: receives user-facing status messages
        max_dependency_depth: longest dependency chain walked by the cycle check
        restore_files_on_failed_update: write the previous files back when the
            install phase of an update fails (by default only the ledger entry
            is restored)
    """

    def __init__(
        self,
        content_store: ContentStore,
        tracking_store: TrackingStore,
        downloader: Downloader,
        conflict_resolver: ConflictResolver,
        *,
        notifier: Notifier | None = None,
        max_dependency_depth: int = DEFAULT_MAX_DEPENDENCY_DEPTH,
        restore_files_on_failed_update: bool = False,
    ) -> None:
        self._content_store = content_store
        self._tracking_store = tracking_store
        self._downloader = downloader
        self._conflict_resolver = conflict_resolver
        self._notifier = notifier or LoggingNotifier()
        self._max_dependency_depth = max_dependency_depth
        self._restore_files_on_failed_update = restore_files_on_failed_update
        self._records: dict[str, LocalExtensionRecord] = {}

    async def initialize(self) -> None:
        self._records = await self._tracking_store.load()
        logger.info(
            "Extension manager initialized",
            data={"tracking_file": self._tracking_store.path, "installed": len(self._records)},
        )

    def get_installed_extensions(self) -> dict[str, LocalExtensionRecord]:
        return dict(self._records)

    def is_installed(self, extension_id: str) -> bool:
        return extension_id in self._records

    def get_installed_version(self, extension_id: str) -> str | None:
        record = self._records.get(extension_id)
        return record.installed_version if record else None

    async def install(self, extension: MarketplaceExtension) -> InstallationOutcome:
        extension_id = extension.unique_id
        logger.info(
            "Installing extension",
            data={"extension_id": extension_id, "version": extension.semantic_version},
        )
        try:
            written = await self._install(extension)
        except ExtensionsError as exc:
            return self._failure("install", extension_id, exc.message)
        except Exception as exc:
            logger.exception("Unexpected error installing extension", data={"extension_id": extension_id})
            return self._failure("install", extension_id, str(exc))

        logger.info(
            "Extension installed",
            data={"extension_id": extension_id, "files": written},
        )
        self._notifier.notify(f'Extension "{extension.display_title}" installed successfully')
        return InstallationOutcome.succeeded(extension_id, written)

    async def uninstall(self, extension_id: str) -> InstallationOutcome:
        logger.info("Uninstalling extension", data={"extension_id": extension_id})
        try:
            removed = await self._uninstall(extension_id)
        except ExtensionsError as exc:
            return self._failure("uninstall", extension_id, exc.message)
        except Exception as exc:
            logger.exception("Unexpected error uninstalling extension", data={"extension_id": extension_id})
            return self._failure("uninstall", extension_id, str(exc))

        logger.info("Extension uninstalled", data={"extension_id": extension_id, "files": removed})
        self._notifier.notify(f'Extension "{extension_id}" uninstalled successfully')
        return InstallationOutcome.succeeded(extension_id, removed)

    async def update(
        self, extension_id: str, extension: MarketplaceExtension
    ) -> InstallationOutcome:
        """
        Replace an installed extension with a new catalog version.

        The old version is uninstalled first. If installing the new version then
        fails, the old ledger entry is put back; its files are only restored
        when ``restore_files_on_failed_update`` is enabled.
        """
        logger.info(
            "Updating extension",
            data={"extension_id": extension_id, "version": extension.semantic_version},
        )
        snapshot = self._records.get(extension_id)
        if snapshot is None:
            return self._failure(
                "update", extension_id, "Extension is not installed. Use install instead."
            )
        if extension.unique_id != extension_id:
            return self._failure(
                "update",
                extension_id,
                f"Catalog entry {extension.unique_id} does not match {extension_id}",
            )

        try:
            saved_files = (
                await self._capture_files(snapshot)
                if self._restore_files_on_failed_update
                else {}
            )
            await self._uninstall(extension_id)
        except ExtensionsError as exc:
            return self._failure("uninstall", extension_id, exc.message)
        except Exception as exc:
            logger.exception("Unexpected error updating extension", data={"extension_id": extension_id})
            return self._failure("update", extension_id, str(exc))

        try:
            written = await self._install(extension)
        except Exception as exc:
            reason = exc.message if isinstance(exc, ExtensionsError) else str(exc)
            await self._restore_after_failed_update(snapshot, saved_files)
            return self._failure(
                "update", extension_id, f"Update failed: {reason}. Old version restored."
            )

        logger.info(
            "Extension updated",
            data={
                "extension_id": extension_id,
                "from_version": snapshot.installed_version,
                "to_version": extension.semantic_version,
            },
        )
        self._notifier.notify(f'Extension "{extension.display_title}" updated successfully')
        return InstallationOutcome.succeeded(extension_id, written)

    async def check_for_updates(
        self, catalog_extensions: Iterable[MarketplaceExtension]
    ) -> list[UpdateNotification]:
        by_id = {extension.unique_id: extension for extension in catalog_extensions}
        updates: list[UpdateNotification] = []
        for extension_id, record in self._records.items():
            available = by_id.get(extension_id)
            if available is None:
                continue
            if is_newer_version(available.semantic_version, record.installed_version):
                updates.append(
                    UpdateNotification(
                        extension_id=extension_id,
                        currently_installed_version=record.installed_version,
                        available_newer_version=available.semantic_version,
                    )
                )
        return updates

    async def cleanup(self) -> None:
        """Release resources held by the manager. Collaborators are not closed."""
        logger.debug("Extension manager cleanup", data={"installed": len(self._records)})

    async def _install(self, extension: MarketplaceExtension) -> list[str]:
        extension_id = extension.unique_id
        if extension_id in self._records:
            raise ExtensionValidationError("Extension is already installed. Use update instead.")

        cycle = self._find_dependency_cycle(extension_id, extension.depends_on_extensions)
        if cycle:
            raise ExtensionValidationError(
                f"Circular dependency detected: {' → '.join(cycle)}"
            )

        for dependency_id in extension.depends_on_extensions:
            if dependency_id not in self._records:
                raise ExtensionValidationError(
                    f"Missing dependency: {dependency_id}. Please install it first."
                )

        # Everything is downloaded before anything is written
        downloads: list[tuple[PackagedFile, bytes]] = []
        for packaged in extension.package_contents:
            content = await self._downloader.get_file(packaged.download_source)
            downloads.append((packaged, content))

        written = await self._write_files(downloads)

        self._records[extension_id] = LocalExtensionRecord(
            extension_id=extension_id,
            installed_version=extension.semantic_version,
            installation_timestamp=utc_now_iso(),
            installed_file_paths=tuple(written),
            linked_dependencies=tuple(extension.depends_on_extensions),
        )
        await self._tracking_store.save(self._records)
        return written

    async def _uninstall(self, extension_id: str) -> list[str]:
        record = self._records.get(extension_id)
        if record is None:
            raise ExtensionValidationError("Extension is not installed")

        dependents = self._find_dependents(extension_id)
        if dependents:
            raise ExtensionValidationError(f"Cannot uninstall: Required by {', '.join(dependents)}")

        removed: list[str] = []
        for path in record.installed_file_paths:
            await self._content_store.delete(path)
            removed.append(path)

        del self._records[extension_id]
        await self._tracking_store.save(self._records)
        return removed

    def _find_dependents(self, extension_id: str) -> list[str]:
        return [
            record_id
            for record_id, record in self._records.items()
            if extension_id in record.linked_dependencies
        ]

    def _find_dependency_cycle(
        self, extension_id: str, dependencies: Iterable[str]
    ) -> list[str]:
        """
        Walk the dependency graph depth-first from a candidate extension.

        Only installed extensions with recorded dependencies are expanded. An
        edge back to any id in the current chain is a cycle, returned as the
        chain ending in the repeated id. The candidate listing itself is not
        reported here since it is not installed yet. Chains longer than
        ``max_dependency_depth`` raise instead of being walked further.
        """
        adjacency = {
            record_id: record.linked_dependencies
            for record_id, record in self._records.items()
            if record.linked_dependencies
        }
        stack: list[tuple[str, tuple[str, ...], tuple[str, ...]]] = [
            (extension_id, tuple(dependencies), ())
        ]
        while stack:
            node, edges, chain = stack.pop()
            chain = (*chain, node)
            if len(chain) > self._max_dependency_depth:
                raise ExtensionValidationError(
                    f"Dependency chain exceeds maximum depth of {self._max_dependency_depth}"
                )
            for dependency_id in edges:
                # A candidate naming itself is left to the missing-dependency check
                if dependency_id == extension_id and len(chain) == 1:
                    continue
                if dependency_id in chain:
                    return [*chain, dependency_id]
            # Reversed so the first declared dependency is walked first
            for dependency_id in reversed(edges):
                if dependency_id in adjacency:
                    stack.append((dependency_id, adjacency[dependency_id], chain))
        return []

    async def _write_files(self, downloads: list[tuple[PackagedFile, bytes]]) -> list[str]:
        written: list[str] = []
        previous: dict[str, bytes] = {}
        try:
            for packaged, content in downloads:
                target, existing = await self._resolve_target(packaged.target_location)
                if existing is not None and target not in previous:
                    previous[target] = existing
                await self._content_store.write(target, content)
                written.append(target)
        except Exception:
            await self._roll_back_writes(written, previous)
            raise
        return written

    async def _resolve_target(self, target_location: str) -> tuple[str, bytes | None]:
        """
        Find the path a packaged file will be written to.

        Returns:
            The path, and the content it currently holds when the file is being
            overridden (None for a new file)
        """
        try:
            path = normalize_content_path(target_location)
        except ContentPathError as exc:
            raise FilesystemConflictError(str(exc), path=target_location) from exc
        while True:
            if await self._content_store.is_folder(path):
                raise FilesystemConflictError(
                    f"Cannot install to {path}: path exists as a folder, not a file",
                    path=path,
                )
            if not await self._content_store.exists(path):
                return path, None

            decision = await self._conflict_resolver.resolve_conflict(path)
            logger.debug(
                "File conflict resolved",
                data={"path": path, "action": decision.action, "new_path": decision.new_path},
            )
            if decision.action == "override":
                return path, await self._content_store.read(path)
            if decision.action == "rename" and decision.new_path:
                renamed = normalize_content_path(decision.new_path)
                if renamed == path:
                    raise FilesystemConflictError(
                        f"Rename target is the existing file: {path}", path=path
                    )
                path = renamed
                continue
            raise InstallCancelledError("Installation cancelled by user", path=path)

    async def _roll_back_writes(self, written: list[str], previous: dict[str, bytes]) -> None:
        for path in reversed(written):
            try:
                if path in previous:
                    await self._content_store.write(path, previous[path])
                else:
                    await self._content_store.delete(path)
            except Exception as exc:
                logger.error(
                    "Failed to roll back installed file",
                    data={"path": path, "error": str(exc)},
                )
        if written:
            logger.warning("Rolled back partially installed files", data={"files": written})

    async def _capture_files(self, record: LocalExtensionRecord) -> dict[str, bytes]:
        saved: dict[str, bytes] = {}
        for path in record.installed_file_paths:
            if await self._content_store.is_file(path):
                saved[path] = await self._content_store.read(path)
        return saved

    async def _restore_after_failed_update(
        self, snapshot: LocalExtensionRecord, saved_files: dict[str, bytes]
    ) -> None:
        self._records[snapshot.extension_id] = snapshot
        for path, content in saved_files.items():
            try:
                await self._content_store.write(path, content)
            except Exception as exc:
                logger.error(
                    "Failed to restore file after update failure",
                    data={"path": path, "error": str(exc)},
                )
        try:
            await self._tracking_store.save(self._records)
        except PersistenceError as exc:
            logger.error(
                "Failed to persist restored ledger entry",
                data={"extension_id": snapshot.extension_id, "error": exc.message},
            )
        logger.warning(
            "Update rolled back",
            data={
                "extension_id": snapshot.extension_id,
                "version": snapshot.installed_version,
                "files_restored": sorted(saved_files),
            },
        )

    def _failure(self, operation: str, extension_id: str, message: str) -> InstallationOutcome:
        logger.error(
            f"Extension {operation} failed",
            data={"extension_id": extension_id, "error": message},
        )
        self._notifier.notify(f"Failed to {operation} extension: {message}", level="error")
        return InstallationOutcome.failed(extension_id, message)
