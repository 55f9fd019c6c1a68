"""
Global constants for vault_extensions with minimal dependencies to avoid circular imports.
"""

DEFAULT_CATALOG_URL = (
    "https://danielshue.github.io/vault-copilot-extensions/catalog/catalog.json"
)

DEFAULT_TRACKING_FILE = ".obsidian/vault-copilot-extensions.json"
"""Tracking ledger location, relative to the content store root."""

TRACKING_FORMAT_VERSION = "1.0"

DEFAULT_CACHE_TTL_SECONDS = 300.0
"""Catalog cache time-to-live (5 minutes)."""

DEFAULT_REQUEST_TIMEOUT_SECONDS = 30.0

DEFAULT_MAX_DEPENDENCY_DEPTH = 64
"""Upper bound for dependency chain walks; deeper chains fail closed."""

DEFAULT_DETAIL_PAGE_BASE = "https://danielshue.github.io/obsidian-vault-copilot/extensions"

DEFAULT_CONFIG_FILENAME = "vault-extensions.yaml"

ENV_PREFIX = "VAULT_EXTENSIONS_"
