from __future__ import annotations

import logging

import pytest

from lingx.config import ConfigurationError, configure_logging, resolve_log_level


def test_resolve_log_level_defaults_to_info(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("LINGX_LOG_LEVEL", raising=False)

    assert resolve_log_level() == logging.INFO


def test_resolve_log_level_reads_env_and_verbose_wins(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LINGX_LOG_LEVEL", "warning")

    assert resolve_log_level() == logging.WARNING
    assert resolve_log_level(verbose=True) == logging.DEBUG


def test_resolve_log_level_rejects_unknown_names(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LINGX_LOG_LEVEL", "chatty")

    with pytest.raises(ConfigurationError):
        resolve_log_level()


def test_configure_logging_quiets_http_loggers() -> None:
    configure_logging(level=logging.DEBUG, force=True)

    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.WARNING
