"""Interactive conflict resolution on the terminal."""

from __future__ import annotations

import asyncio

from rich.markup import escape
from rich.prompt import Prompt

from vault_extensions.core.logging.logger import get_logger
from vault_extensions.extensions.conflicts import ConflictDecision, generate_unique_path
from vault_extensions.ui.console import console

logger = get_logger(__name__)

_CHOICES = ["override", "rename", "cancel"]


class ConsoleConflictResolver:
    """
    Ask the user what to do with each colliding file.

    End of input, Ctrl+C and an empty rename target all cancel the install.
    """

    async def resolve_conflict(self, existing_path: str) -> ConflictDecision:
        try:
            return await asyncio.to_thread(self._ask, existing_path)
        except (EOFError, KeyboardInterrupt):
            logger.info("Conflict prompt closed, cancelling", data={"path": existing_path})
            return ConflictDecision.cancel()

    def _ask(self, existing_path: str) -> ConflictDecision:
        console.print(f"[yellow]File already exists:[/yellow] [cyan]{escape(existing_path)}[/cyan]")
        action = Prompt.ask(
            "Override, rename or cancel?",
            choices=_CHOICES,
            default="cancel",
            console=console,
        )
        if action == "override":
            return ConflictDecision.override()
        if action == "rename":
            new_path = Prompt.ask(
                "New path",
                default=generate_unique_path(existing_path),
                console=console,
            ).strip()
            if not new_path:
                return ConflictDecision.cancel()
            return ConflictDecision.rename(new_path)
        return ConflictDecision.cancel()
