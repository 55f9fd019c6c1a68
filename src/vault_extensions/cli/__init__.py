"""Command line interface for vault-extensions."""
