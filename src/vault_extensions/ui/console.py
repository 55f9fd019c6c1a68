"""
Centralized console configuration for vault_extensions.

Tables, notices, prompts and log records all render on one console. It writes
to stderr so that piped stdout stays clean.
"""

from rich.console import Console

console = Console(
    stderr=True,
    color_system="auto",
)
