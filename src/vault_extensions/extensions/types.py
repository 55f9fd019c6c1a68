"""
Data model for the extension marketplace.

Domain values are frozen dataclasses. Catalog payloads are validated with
pydantic models that accept either the internal camelCase shape or the raw
shape published by the catalog builder, and convert into the dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Literal, get_args

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictStr,
    ValidationError,
    model_validator,
)

from vault_extensions.constants import DEFAULT_DETAIL_PAGE_BASE
from vault_extensions.core.exceptions import CatalogFormatError

ExtensionKind = Literal["agent", "voice-agent", "prompt", "skill", "mcp-server"]
EXTENSION_KINDS: tuple[str, ...] = get_args(ExtensionKind)


def is_valid_extension_kind(value: object) -> bool:
    return isinstance(value, str) and value in EXTENSION_KINDS


@dataclass(frozen=True)
class ExtensionCreator:
    display_name: str
    profile_link: str | None = None
    contact_email: str | None = None


@dataclass(frozen=True)
class PackagedFile:
    """A downloadable file of an extension package."""

    relative_path: str
    download_source: str
    target_location: str


@dataclass(frozen=True)
class MarketplaceExtension:
    """Catalog entry for one extension. Read-only on the client."""

    unique_id: str
    display_title: str
    kind: ExtensionKind
    semantic_version: str
    package_contents: tuple[PackagedFile, ...] = ()
    depends_on_extensions: tuple[str, ...] = ()
    brief_summary: str = ""
    creator: ExtensionCreator = field(default_factory=lambda: ExtensionCreator(display_name=""))
    classification_tags: tuple[str, ...] = ()
    search_keywords: tuple[str, ...] = ()
    download_metrics: int | None = None
    community_rating: float | None = None
    publish_timestamp: str = ""
    last_modified_timestamp: str = ""
    total_size_bytes: str = "0"
    required_plugin_version: str = "0.0.0"
    source_repository: str | None = None
    web_detail_page: str = ""
    required_capabilities: tuple[str, ...] = ()
    preview_image_url: str | None = None


@dataclass(frozen=True)
class CatalogManifest:
    schema_version: str
    build_timestamp: str
    available_extensions: tuple[MarketplaceExtension, ...]
    known_categories: tuple[str, ...]
    highlighted_extensions: tuple[str, ...]


@dataclass(frozen=True)
class LocalExtensionRecord:
    """Ledger entry for an installed extension."""

    extension_id: str
    installed_version: str
    installation_timestamp: str
    installed_file_paths: tuple[str, ...]
    linked_dependencies: tuple[str, ...]


@dataclass(frozen=True)
class InstallationOutcome:
    """Result of install, uninstall and update."""

    operation_succeeded: bool
    affected_extension_id: str
    modified_file_paths: tuple[str, ...] = ()
    error_details: str | None = None

    @classmethod
    def succeeded(cls, extension_id: str, paths: tuple[str, ...] | list[str]) -> InstallationOutcome:
        return cls(
            operation_succeeded=True,
            affected_extension_id=extension_id,
            modified_file_paths=tuple(paths),
        )

    @classmethod
    def failed(cls, extension_id: str, details: str) -> InstallationOutcome:
        return cls(
            operation_succeeded=False,
            affected_extension_id=extension_id,
            error_details=details,
        )


@dataclass(frozen=True)
class UpdateNotification:
    extension_id: str
    currently_installed_version: str
    available_newer_version: str
    update_description: str | None = None


@dataclass(frozen=True)
class BrowseFilter:
    """Search criteria. Omitted fields do not filter."""

    text_query: str | None = None
    filter_by_kind: ExtensionKind | None = None
    filter_by_categories: tuple[str, ...] = ()
    show_only_installed: bool = False


@dataclass(frozen=True)
class CacheStatus:
    last_fetched_at: datetime | None
    is_stale: bool


def utc_now_iso() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


class _CreatorModel(BaseModel):
    display_name: StrictStr = Field(default="", alias="displayName")
    profile_link: StrictStr | None = Field(default=None, alias="profileLink")
    contact_email: StrictStr | None = Field(default=None, alias="contactEmail")

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class _PackagedFileModel(BaseModel):
    relative_path: StrictStr = Field(alias="relativePath")
    download_source: StrictStr = Field(alias="downloadSource")
    target_location: StrictStr = Field(alias="targetLocation")

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class _ExtensionModel(BaseModel):
    unique_id: StrictStr = Field(alias="uniqueId")
    display_title: StrictStr = Field(alias="displayTitle")
    kind: ExtensionKind
    semantic_version: StrictStr = Field(alias="semanticVersion")
    brief_summary: StrictStr = Field(default="", alias="briefSummary")
    creator: _CreatorModel = Field(default_factory=_CreatorModel)
    classification_tags: list[StrictStr] = Field(default_factory=list, alias="classificationTags")
    search_keywords: list[StrictStr] = Field(default_factory=list, alias="searchKeywords")
    download_metrics: int | None = Field(default=None, alias="downloadMetrics")
    community_rating: float | None = Field(default=None, alias="communityRating")
    publish_timestamp: StrictStr = Field(default="", alias="publishTimestamp")
    last_modified_timestamp: StrictStr = Field(default="", alias="lastModifiedTimestamp")
    total_size_bytes: StrictStr = Field(default="0", alias="totalSizeBytes")
    required_plugin_version: StrictStr = Field(default="0.0.0", alias="requiredPluginVersion")
    source_repository: StrictStr | None = Field(default=None, alias="sourceRepository")
    web_detail_page: StrictStr = Field(default="", alias="webDetailPage")
    package_contents: list[_PackagedFileModel] = Field(alias="packageContents")
    required_capabilities: list[StrictStr] = Field(
        default_factory=list, alias="requiredCapabilities"
    )
    depends_on_extensions: list[StrictStr] = Field(
        default_factory=list, alias="dependsOnExtensions"
    )
    preview_image_url: StrictStr | None = Field(default=None, alias="previewImageUrl")

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _normalize_entry(cls, data: Any) -> Any:
        if isinstance(data, dict) and "uniqueId" not in data and "id" in data:
            return _transform_raw_extension(data)
        return data

    def to_extension(self) -> MarketplaceExtension:
        return MarketplaceExtension(
            unique_id=self.unique_id,
            display_title=self.display_title,
            kind=self.kind,
            semantic_version=self.semantic_version,
            package_contents=tuple(
                PackagedFile(
                    relative_path=entry.relative_path,
                    download_source=entry.download_source,
                    target_location=entry.target_location,
                )
                for entry in self.package_contents
            ),
            depends_on_extensions=tuple(self.depends_on_extensions),
            brief_summary=self.brief_summary,
            creator=ExtensionCreator(
                display_name=self.creator.display_name,
                profile_link=self.creator.profile_link,
                contact_email=self.creator.contact_email,
            ),
            classification_tags=tuple(self.classification_tags),
            search_keywords=tuple(self.search_keywords),
            download_metrics=self.download_metrics,
            community_rating=self.community_rating,
            publish_timestamp=self.publish_timestamp,
            last_modified_timestamp=self.last_modified_timestamp,
            total_size_bytes=self.total_size_bytes,
            required_plugin_version=self.required_plugin_version,
            source_repository=self.source_repository,
            web_detail_page=self.web_detail_page,
            required_capabilities=tuple(self.required_capabilities),
            preview_image_url=self.preview_image_url,
        )


class CatalogPayloadModel(BaseModel):
    schema_version: StrictStr = Field(alias="schemaVersion")
    build_timestamp: StrictStr = Field(alias="buildTimestamp")
    available_extensions: list[_ExtensionModel] = Field(alias="availableExtensions")
    known_categories: list[StrictStr] = Field(alias="knownCategories")
    highlighted_extensions: list[StrictStr] = Field(alias="highlightedExtensions")

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _normalize_payload(cls, data: Any) -> Any:
        if isinstance(data, dict) and "availableExtensions" not in data and "extensions" in data:
            return {
                "schemaVersion": data.get("version"),
                "buildTimestamp": data.get("generated"),
                "availableExtensions": data.get("extensions"),
                "knownCategories": data.get("categories", []),
                "highlightedExtensions": data.get("featured", []),
            }
        return data

    def to_manifest(self) -> CatalogManifest:
        return CatalogManifest(
            schema_version=self.schema_version,
            build_timestamp=self.build_timestamp,
            available_extensions=tuple(entry.to_extension() for entry in self.available_extensions),
            known_categories=tuple(self.known_categories),
            highlighted_extensions=tuple(self.highlighted_extensions),
        )


def _transform_raw_extension(raw: dict[str, Any]) -> dict[str, Any]:
    """Map a raw catalog.json extension entry onto the internal field names."""
    now = utc_now_iso()
    ext_type = raw.get("type")
    author = raw.get("author")
    creator: Any = author
    if isinstance(author, dict):
        creator = {
            "displayName": author.get("name"),
            "profileLink": author.get("url"),
            "contactEmail": author.get("email"),
        }

    files = raw.get("files")
    package_contents: Any = files
    if isinstance(files, list):
        package_contents = [_transform_raw_file(entry) for entry in files]

    return {
        "uniqueId": raw.get("id"),
        "displayTitle": raw.get("name"),
        "kind": ext_type,
        "semanticVersion": raw.get("version"),
        "briefSummary": raw.get("description", ""),
        "creator": creator if creator is not None else {},
        "classificationTags": raw.get("categories", []),
        "searchKeywords": raw.get("tags", []),
        "downloadMetrics": raw.get("downloads"),
        "communityRating": raw.get("rating"),
        "publishTimestamp": raw.get("publishedAt") or now,
        "lastModifiedTimestamp": raw.get("updatedAt") or now,
        "totalSizeBytes": raw.get("size") or "0",
        "requiredPluginVersion": raw.get("minVaultCopilotVersion") or "0.0.0",
        "sourceRepository": raw.get("repository"),
        "webDetailPage": raw.get("detailPageUrl")
        or f"{DEFAULT_DETAIL_PAGE_BASE}/{ext_type}s/{raw.get('id')}/",
        "packageContents": package_contents,
        "requiredCapabilities": raw.get("tools") or [],
        "dependsOnExtensions": raw.get("dependencies") or [],
        "previewImageUrl": raw.get("preview"),
    }


def _transform_raw_file(entry: Any) -> Any:
    if not isinstance(entry, dict):
        return entry
    source = entry.get("source")
    target = entry.get("installPath")
    # A directory install path receives the file under its source name
    if isinstance(target, str) and isinstance(source, str) and target.endswith("/"):
        target = target + source
    return {
        "relativePath": source,
        "downloadSource": entry.get("downloadUrl"),
        "targetLocation": target,
    }


def parse_catalog_payload(data: Any) -> CatalogManifest:
    """Validate a decoded catalog.json body and convert it to a manifest."""
    if not isinstance(data, dict):
        raise CatalogFormatError("Invalid catalog format received from server")
    try:
        model = CatalogPayloadModel.model_validate(data)
    except ValidationError as exc:
        raise CatalogFormatError(
            "Invalid catalog format received from server",
            details=str(exc),
        ) from exc
    return model.to_manifest()


def parse_extension_entry(data: Any) -> MarketplaceExtension:
    """Validate a single extension entry in either catalog shape."""
    try:
        return _ExtensionModel.model_validate(data).to_extension()
    except ValidationError as exc:
        raise CatalogFormatError("Invalid extension entry", details=str(exc)) from exc
