from __future__ import annotations

from typing import NamedTuple


class VersionTriple(NamedTuple):
    major: int
    minor: int
    patch: int


def _component(parts: list[str], index: int) -> int:
    if index >= len(parts):
        return 0
    try:
        return int(parts[index])
    except ValueError:
        return 0


def parse_version(version: str) -> VersionTriple:
    """Parse ``major.minor.patch``; missing or non-numeric components are 0."""
    parts = version.strip().split(".")
    return VersionTriple(_component(parts, 0), _component(parts, 1), _component(parts, 2))


def is_newer_version(new_version: str, current_version: str) -> bool:
    """True when ``new_version`` is strictly newer than ``current_version``."""
    return parse_version(new_version) > parse_version(current_version)
