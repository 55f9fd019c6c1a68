"""Extension catalog, installation and tracking."""

from .catalog import ExtensionCatalog
from .conflicts import (
    CancelConflictResolver,
    ConflictDecision,
    ConflictResolver,
    OverrideConflictResolver,
    RenameConflictResolver,
    generate_unique_path,
    resolver_for_policy,
)
from .content_store import ContentStore, LocalContentStore, normalize_content_path
from .downloader import Downloader, HttpDownloader
from .manager import ExtensionManager
from .notifications import LoggingNotifier, Notifier, RecordingNotifier
from .tracking import TrackingStore
from .types import (
    BrowseFilter,
    CacheStatus,
    CatalogManifest,
    ExtensionCreator,
    ExtensionKind,
    InstallationOutcome,
    LocalExtensionRecord,
    MarketplaceExtension,
    PackagedFile,
    UpdateNotification,
    parse_catalog_payload,
)
from .versions import is_newer_version, parse_version

__all__ = [
    # Catalog
    "ExtensionCatalog",
    "parse_catalog_payload",
    # Manager
    "ExtensionManager",
    "TrackingStore",
    "is_newer_version",
    "parse_version",
    # Conflicts
    "CancelConflictResolver",
    "ConflictDecision",
    "ConflictResolver",
    "OverrideConflictResolver",
    "RenameConflictResolver",
    "generate_unique_path",
    "resolver_for_policy",
    # Host capabilities
    "ContentStore",
    "Downloader",
    "HttpDownloader",
    "LocalContentStore",
    "LoggingNotifier",
    "Notifier",
    "RecordingNotifier",
    "normalize_content_path",
    # Types
    "BrowseFilter",
    "CacheStatus",
    "CatalogManifest",
    "ExtensionCreator",
    "ExtensionKind",
    "InstallationOutcome",
    "LocalExtensionRecord",
    "MarketplaceExtension",
    "PackagedFile",
    "UpdateNotification",
]
