"""
Logger wrapper with structured ``data`` payloads.

Call sites pass context as a mapping instead of formatting it into the message:

    logger.info("Installed extension", data={"extension_id": "daily-notes"})

The payload is attached to the log record (``record.data``) and rendered after
the message by the configured handler.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping

from rich.logging import RichHandler

from vault_extensions.ui.console import console

if TYPE_CHECKING:
    from vault_extensions.config import LoggerSettings

ROOT_LOGGER_NAME = "vault_extensions"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class _DataFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        data = getattr(record, "data", None)
        if data:
            rendered = ", ".join(f"{key}={value}" for key, value in data.items())
            message = f"{message} [{rendered}]"
        return message


class Logger:
    """Thin adapter over :mod:`logging` accepting a ``data`` keyword."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._logger = logging.getLogger(name)

    def _log(
        self,
        level: int,
        message: str,
        data: Mapping[str, Any] | None,
        **kwargs: Any,
    ) -> None:
        if not self._logger.isEnabledFor(level):
            return
        extra = {"data": dict(data) if data else {}}
        self._logger.log(level, message, extra=extra, stacklevel=3, **kwargs)

    def debug(self, message: str, data: Mapping[str, Any] | None = None, **kwargs: Any) -> None:
        self._log(logging.DEBUG, message, data, **kwargs)

    def info(self, message: str, data: Mapping[str, Any] | None = None, **kwargs: Any) -> None:
        self._log(logging.INFO, message, data, **kwargs)

    def warning(self, message: str, data: Mapping[str, Any] | None = None, **kwargs: Any) -> None:
        self._log(logging.WARNING, message, data, **kwargs)

    def error(self, message: str, data: Mapping[str, Any] | None = None, **kwargs: Any) -> None:
        self._log(logging.ERROR, message, data, **kwargs)

    def exception(
        self, message: str, data: Mapping[str, Any] | None = None, **kwargs: Any
    ) -> None:
        kwargs.setdefault("exc_info", True)
        self._log(logging.ERROR, message, data, **kwargs)


_loggers: dict[str, Logger] = {}
_lock = threading.Lock()


def get_logger(name: str) -> Logger:
    with _lock:
        logger = _loggers.get(name)
        if logger is None:
            logger = Logger(name)
            _loggers[name] = logger
        return logger


def configure_logging(settings: LoggerSettings) -> None:
    """Install the handler selected by ``settings`` on the package root logger."""
    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    root.setLevel(_LEVELS.get(settings.level, logging.WARNING))
    root.propagate = False

    handler: logging.Handler
    if settings.type == "console":
        handler = RichHandler(
            console=console,
            show_path=settings.show_path,
            rich_tracebacks=True,
        )
        handler.setFormatter(_DataFormatter("%(message)s"))
    elif settings.type == "file":
        path = Path(settings.path)
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, encoding="utf-8")
        handler.setFormatter(
            _DataFormatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
    else:
        handler = logging.NullHandler()

    root.addHandler(handler)
