"""Logging helpers for vault_extensions."""

from .logger import Logger, configure_logging, get_logger

__all__ = ["Logger", "configure_logging", "get_logger"]
