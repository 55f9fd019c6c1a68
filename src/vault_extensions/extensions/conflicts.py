"""
File conflict resolution for extension installs.

When an install would write over an existing file, the manager awaits a
``ConflictResolver`` for a decision:

- override: replace the existing file
- rename: write the incoming file to ``new_path`` instead
- cancel: abort the whole install

Headless hosts inject one of the fixed policies below; the CLI uses an
interactive console prompt. There is no timeout on the decision.
"""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass
from typing import Literal, Protocol, runtime_checkable

ConflictAction = Literal["override", "rename", "cancel"]

_NUMERIC_SUFFIX = re.compile(r"^(.+)-(\d+)$")


@dataclass(frozen=True)
class ConflictDecision:
    """Decision returned for one colliding path."""

    action: ConflictAction
    new_path: str | None = None

    @classmethod
    def override(cls) -> ConflictDecision:
        return cls(action="override")

    @classmethod
    def rename(cls, new_path: str) -> ConflictDecision:
        return cls(action="rename", new_path=new_path)

    @classmethod
    def cancel(cls) -> ConflictDecision:
        return cls(action="cancel")


@runtime_checkable
class ConflictResolver(Protocol):
    """Protocol for install-time conflict resolution."""

    async def resolve_conflict(self, existing_path: str) -> ConflictDecision:
        """
        Decide what to do with a file that already exists at ``existing_path``.

        Returns:
            ConflictDecision; a resolver that cannot decide should return cancel
        """
        ...


def generate_unique_path(path: str) -> str:
    """
    Suggest an alternate file name by adding or bumping a numeric suffix.

    ``notes/file.md`` -> ``notes/file-1.md``; ``notes/file-1.md`` -> ``notes/file-2.md``
    """
    directory, filename = posixpath.split(path)
    basename, extension = _split_extension(filename)

    match = _NUMERIC_SUFFIX.match(basename)
    if match:
        renamed = f"{match.group(1)}-{int(match.group(2)) + 1}{extension}"
    else:
        renamed = f"{basename}-1{extension}"
    return posixpath.join(directory, renamed) if directory else renamed


def _split_extension(filename: str) -> tuple[str, str]:
    # Only the last dot counts, so "a.agent.md" keeps "a.agent" as the basename
    dot = filename.rfind(".")
    if dot < 0:
        return filename, ""
    return filename[:dot], filename[dot:]


class OverrideConflictResolver:
    """Always overwrite existing files."""

    async def resolve_conflict(self, existing_path: str) -> ConflictDecision:
        return ConflictDecision.override()


class RenameConflictResolver:
    """Always keep existing files and write the incoming one under a new name."""

    async def resolve_conflict(self, existing_path: str) -> ConflictDecision:
        return ConflictDecision.rename(generate_unique_path(existing_path))


class CancelConflictResolver:
    """Abort any install that would touch an existing file."""

    async def resolve_conflict(self, existing_path: str) -> ConflictDecision:
        return ConflictDecision.cancel()


def resolver_for_policy(policy: str) -> ConflictResolver:
    """Return the headless resolver for ``override``, ``rename`` or ``cancel``."""
    if policy == "override":
        return OverrideConflictResolver()
    if policy == "rename":
        return RenameConflictResolver()
    if policy == "cancel":
        return CancelConflictResolver()
    raise ValueError(f"No headless conflict resolver for policy: {policy}")
