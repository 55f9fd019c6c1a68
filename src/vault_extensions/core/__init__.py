"""Core infrastructure for vault_extensions: errors and logging."""
