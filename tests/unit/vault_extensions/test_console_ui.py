from unittest.mock import patch

import pytest

from vault_extensions.extensions.conflicts import ConflictDecision
from vault_extensions.ui import conflict_prompt
from vault_extensions.ui.conflict_prompt import ConsoleConflictResolver
from vault_extensions.ui.notifier import ConsoleNotifier


@pytest.mark.asyncio
async def test_prompt_override() -> None:
    with patch.object(conflict_prompt.Prompt, "ask", side_effect=["override"]):
        decision = await ConsoleConflictResolver().resolve_conflict("note.md")
    assert decision == ConflictDecision.override()


@pytest.mark.asyncio
async def test_prompt_rename_uses_answer() -> None:
    with patch.object(conflict_prompt.Prompt, "ask", side_effect=["rename", " notes/other.md "]) as ask:
        decision = await ConsoleConflictResolver().resolve_conflict("note.md")
    assert decision == ConflictDecision.rename("notes/other.md")
    assert ask.call_args_list[1].kwargs["default"] == "note-1.md"


@pytest.mark.asyncio
async def test_prompt_blank_rename_cancels() -> None:
    with patch.object(conflict_prompt.Prompt, "ask", side_effect=["rename", "   "]):
        decision = await ConsoleConflictResolver().resolve_conflict("note.md")
    assert decision == ConflictDecision.cancel()


@pytest.mark.asyncio
async def test_closed_prompt_cancels() -> None:
    with patch.object(conflict_prompt.Prompt, "ask", side_effect=EOFError()):
        decision = await ConsoleConflictResolver().resolve_conflict("note.md")
    assert decision == ConflictDecision.cancel()


def test_console_notifier_escapes_markup(capsys) -> None:
    ConsoleNotifier().notify("Failed: [bold]not markup[/bold]", level="error")
    assert "[bold]not markup[/bold]" in capsys.readouterr().err
