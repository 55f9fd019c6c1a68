"""
Tracking store: the persisted ledger of installed extensions.

The ledger is a JSON document inside the content store:

    {
      "formatVersion": "1.0",
      "installedExtensions": {
        "<id>": {"extensionId": ..., "installedVersion": ..., ...}
      }
    }

Missing, unreadable, empty or structurally invalid documents load as an empty
ledger. Write failures raise ``PersistenceError``.
"""

from __future__ import annotations

import json
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError, model_validator

from vault_extensions.constants import DEFAULT_TRACKING_FILE, TRACKING_FORMAT_VERSION
from vault_extensions.core.exceptions import PersistenceError
from vault_extensions.core.logging.logger import get_logger
from vault_extensions.extensions.content_store import ContentStore
from vault_extensions.extensions.types import LocalExtensionRecord

logger = get_logger(__name__)


class _RecordModel(BaseModel):
    extension_id: StrictStr = Field(alias="extensionId")
    installed_version: StrictStr = Field(alias="installedVersion")
    installation_timestamp: StrictStr = Field(alias="installationTimestamp")
    installed_file_paths: list[StrictStr] = Field(alias="installedFilePaths")
    linked_dependencies: list[StrictStr] = Field(default_factory=list, alias="linkedDependencies")

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class TrackingFileModel(BaseModel):
    format_version: StrictStr = Field(alias="formatVersion")
    installed_extensions: dict[str, _RecordModel] = Field(alias="installedExtensions")

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @model_validator(mode="after")
    def _check_keys(self) -> TrackingFileModel:
        for key, record in self.installed_extensions.items():
            if key != record.extension_id:
                raise ValueError(
                    f"Ledger key '{key}' does not match extensionId '{record.extension_id}'"
                )
        return self


def record_to_payload(record: LocalExtensionRecord) -> dict[str, Any]:
    return {
        "extensionId": record.extension_id,
        "installedVersion": record.installed_version,
        "installationTimestamp": record.installation_timestamp,
        "installedFilePaths": list(record.installed_file_paths),
        "linkedDependencies": list(record.linked_dependencies),
    }


def serialize_ledger(records: Mapping[str, LocalExtensionRecord]) -> str:
    payload = {
        "formatVersion": TRACKING_FORMAT_VERSION,
        "installedExtensions": {
            extension_id: record_to_payload(record) for extension_id, record in records.items()
        },
    }
    return json.dumps(payload, indent=2, ensure_ascii=False) + "\n"


def parse_ledger(text: str) -> dict[str, LocalExtensionRecord]:
    """Parse a ledger document; raises ValueError when it is not usable."""
    if not text.strip():
        return {}
    data = json.loads(text)
    model = TrackingFileModel.model_validate(data)
    return {
        extension_id: LocalExtensionRecord(
            extension_id=entry.extension_id,
            installed_version=entry.installed_version,
            installation_timestamp=entry.installation_timestamp,
            installed_file_paths=tuple(entry.installed_file_paths),
            linked_dependencies=tuple(entry.linked_dependencies),
        )
        for extension_id, entry in model.installed_extensions.items()
    }


class TrackingStore:
    """Reads and writes the ledger document through a content store."""

    def __init__(self, content_store: ContentStore, path: str = DEFAULT_TRACKING_FILE) -> None:
        self._content_store = content_store
        self._path = path

    @property
    def path(self) -> str:
        return self._path

    async def load(self) -> dict[str, LocalExtensionRecord]:
        try:
            if not await self._content_store.is_file(self._path):
                return {}
            raw = await self._content_store.read(self._path)
            return parse_ledger(raw.decode("utf-8"))
        except (OSError, UnicodeDecodeError, ValueError, ValidationError) as exc:
            # json.JSONDecodeError is a ValueError
            logger.warning(
                "Tracking file unreadable, starting with an empty ledger",
                data={"path": self._path, "error": str(exc)},
            )
            return {}

    async def save(self, records: Mapping[str, LocalExtensionRecord]) -> None:
        content = serialize_ledger(records)
        try:
            await self._content_store.write(self._path, content.encode("utf-8"))
        except (OSError, ValueError) as exc:
            raise PersistenceError(
                f"Failed to write tracking file {self._path}", details=str(exc)
            ) from exc
        logger.debug(
            "Tracking file saved",
            data={"path": self._path, "extensions": len(records)},
        )
