import logging

from vault_extensions.config import LoggerSettings
from vault_extensions.core.logging.logger import (
    ROOT_LOGGER_NAME,
    _DataFormatter,
    configure_logging,
    get_logger,
)


def test_get_logger_is_cached() -> None:
    assert get_logger("vault_extensions.sample") is get_logger("vault_extensions.sample")


def test_data_is_attached_to_records(caplog) -> None:
    logger = get_logger("vault_extensions.sample")
    with caplog.at_level(logging.INFO, logger=ROOT_LOGGER_NAME):
        logger.info("Installed extension", data={"extension_id": "daily-journal"})

    record = caplog.records[-1]
    assert record.getMessage() == "Installed extension"
    assert record.data == {"extension_id": "daily-journal"}


def test_data_formatter_appends_payload() -> None:
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "Fetched", None, None)
    record.data = {"url": "https://example.test", "extensions": 3}
    assert _DataFormatter("%(message)s").format(record) == (
        "Fetched [url=https://example.test, extensions=3]"
    )


def test_file_logging(tmp_path) -> None:
    log_path = tmp_path / "logs" / "vault.log"
    configure_logging(LoggerSettings(type="file", level="info", path=str(log_path)))

    get_logger("vault_extensions.sample").info("Catalog fetched", data={"extensions": 2})
    for handler in logging.getLogger(ROOT_LOGGER_NAME).handlers:
        handler.flush()

    content = log_path.read_text(encoding="utf-8")
    assert "INFO vault_extensions.sample: Catalog fetched [extensions=2]" in content


def test_level_filters_records(tmp_path) -> None:
    log_path = tmp_path / "vault.log"
    configure_logging(LoggerSettings(type="file", level="warning", path=str(log_path)))

    logger = get_logger("vault_extensions.sample")
    logger.info("hidden")
    logger.warning("shown")
    for handler in logging.getLogger(ROOT_LOGGER_NAME).handlers:
        handler.flush()

    content = log_path.read_text(encoding="utf-8")
    assert "hidden" not in content
    assert "shown" in content


def test_none_logger_installs_null_handler() -> None:
    configure_logging(LoggerSettings(type="none"))
    handlers = logging.getLogger(ROOT_LOGGER_NAME).handlers
    assert len(handlers) == 1
    assert isinstance(handlers[0], logging.NullHandler)


def test_logging_notifier_maps_levels(caplog) -> None:
    from vault_extensions.extensions.notifications import LoggingNotifier

    with caplog.at_level(logging.INFO, logger=ROOT_LOGGER_NAME):
        LoggingNotifier().notify("Using cached catalog", level="warning")
        LoggingNotifier().notify("Installed")

    assert [(r.levelno, r.getMessage()) for r in caplog.records] == [
        (logging.WARNING, "Using cached catalog"),
        (logging.INFO, "Installed"),
    ]
