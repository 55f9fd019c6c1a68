"""Notifier that prints notices to the shared console."""

from __future__ import annotations

from rich.markup import escape

from vault_extensions.extensions.notifications import NoticeLevel
from vault_extensions.ui.console import console

_STYLES: dict[str, str] = {
    "info": "dim",
    "warning": "yellow",
    "error": "red",
}


class ConsoleNotifier:
    def notify(self, message: str, *, level: NoticeLevel = "info") -> None:
        style = _STYLES.get(level, "dim")
        console.print(f"[{style}]▎• {escape(message)}[/{style}]")
