from __future__ import annotations

import logging
import os

import pytest

import vault_extensions.config as config_module
from vault_extensions.core.logging.logger import ROOT_LOGGER_NAME


@pytest.fixture(autouse=True)
def isolate_settings(tmp_path, monkeypatch):
    """Keep cached settings, VAULT_EXTENSIONS_* variables and log handlers out of other tests."""

    for key in list(os.environ):
        if key.startswith(config_module.ENV_PREFIX):
            monkeypatch.delenv(key, raising=False)
    # A vault-extensions.yaml in the developer's working directory must not leak in
    monkeypatch.chdir(tmp_path)

    original_settings = config_module._settings
    original_config_path = config_module._config_path
    config_module._settings = None
    config_module._config_path = None

    try:
        yield
    finally:
        config_module._settings = original_settings
        config_module._config_path = original_config_path
        root = logging.getLogger(ROOT_LOGGER_NAME)
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
        root.propagate = True
        root.setLevel(logging.NOTSET)
