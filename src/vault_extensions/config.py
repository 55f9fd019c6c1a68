"""
Reading settings from environment variables and the YAML configuration file.

Priority, highest first: explicit keyword arguments, ``VAULT_EXTENSIONS_*``
environment variables (nested with ``__``), then ``vault-extensions.yaml``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from vault_extensions.constants import (
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_CATALOG_URL,
    DEFAULT_CONFIG_FILENAME,
    DEFAULT_MAX_DEPENDENCY_DEPTH,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_TRACKING_FILE,
    ENV_PREFIX,
)

ConflictPolicy = Literal["prompt", "override", "rename", "cancel"]


class ExtensionsSettings(BaseModel):
    """Catalog and installation behaviour."""

    catalog_url: str = DEFAULT_CATALOG_URL
    """Endpoint serving catalog.json"""

    cache_ttl_seconds: float = Field(default=DEFAULT_CACHE_TTL_SECONDS, gt=0)
    """How long a fetched catalog is served without revalidation"""

    request_timeout_seconds: float = Field(default=DEFAULT_REQUEST_TIMEOUT_SECONDS, gt=0)

    tracking_file: str = DEFAULT_TRACKING_FILE
    """Ledger path, relative to the content store root"""

    conflict_policy: ConflictPolicy = "prompt"
    """How install-time file collisions are resolved when no resolver is injected"""

    max_dependency_depth: int = Field(default=DEFAULT_MAX_DEPENDENCY_DEPTH, ge=1)

    restore_files_on_failed_update: bool = False
    """Write back the previous files when an update's install phase fails"""

    model_config = ConfigDict(extra="ignore")


class LoggerSettings(BaseModel):
    """Logger settings for vault_extensions."""

    type: Literal["none", "console", "file"] = "console"

    level: Literal["debug", "info", "warning", "error"] = "warning"

    path: str = "vault-extensions.log"
    """Path to log file, if logger 'type' is 'file'."""

    show_path: bool = False

    @field_validator("level", mode="before")
    @classmethod
    def _lower_level(cls, value: object) -> object:
        if isinstance(value, str):
            return value.lower()
        return value


class Settings(BaseSettings):
    """Settings class for vault_extensions."""

    content_root: str = "."
    """Filesystem root of the content store (the vault)"""

    extensions: ExtensionsSettings = Field(default_factory=ExtensionsSettings)

    logger: LoggerSettings = Field(default_factory=LoggerSettings)

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_nested_delimiter="__",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        yaml_file = _config_path or Path(DEFAULT_CONFIG_FILENAME)
        return (
            init_settings,
            env_settings,
            YamlConfigSettingsSource(settings_cls, yaml_file=yaml_file),
        )

    @property
    def content_root_path(self) -> Path:
        return Path(self.content_root).expanduser().resolve()


# Global settings object
_settings: Settings | None = None
_config_path: Path | None = None


def get_settings(config_path: str | Path | None = None) -> Settings:
    """Get settings instance, loading from ``config_path`` if provided."""
    global _settings, _config_path

    if config_path is None and _settings is not None:
        return _settings

    if config_path is not None:
        resolved = Path(config_path).expanduser()
        if not resolved.exists():
            raise FileNotFoundError(f"Configuration file not found: {resolved}")
        _config_path = resolved

    _settings = Settings()
    return _settings


def update_global_settings(settings: Settings) -> None:
    global _settings
    _settings = settings


def reset_settings() -> None:
    global _settings, _config_path
    _settings = None
    _config_path = None
