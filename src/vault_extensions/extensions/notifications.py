"""Fire-and-forget status messages for the user."""

from __future__ import annotations

from typing import Literal, Protocol, runtime_checkable

from vault_extensions.core.logging.logger import get_logger

logger = get_logger(__name__)

NoticeLevel = Literal["info", "warning", "error"]


@runtime_checkable
class Notifier(Protocol):
    def notify(self, message: str, *, level: NoticeLevel = "info") -> None: ...


class LoggingNotifier:
    """Notifier for headless hosts: notices become log records."""

    def notify(self, message: str, *, level: NoticeLevel = "info") -> None:
        if level == "error":
            logger.error(message)
        elif level == "warning":
            logger.warning(message)
        else:
            logger.info(message)


class RecordingNotifier:
    """Keeps notices in memory, for hosts that render them later."""

    def __init__(self) -> None:
        self.notices: list[tuple[NoticeLevel, str]] = []

    def notify(self, message: str, *, level: NoticeLevel = "info") -> None:
        self.notices.append((level, message))
