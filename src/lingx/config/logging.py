"""Logging setup for the CLI and the API server."""

from __future__ import annotations

import logging

from .env import optional_env
from .errors import ConfigurationError

_QUIET_LOGGERS = ("httpx", "httpcore", "alembic.runtime.migration")


def resolve_log_level(*, verbose: bool = False) -> int:
    """``--verbose`` wins over ``LINGX_LOG_LEVEL``, which wins over INFO."""

    if verbose:
        return logging.DEBUG
    name = optional_env("LINGX_LOG_LEVEL")
    if name is None:
        return logging.INFO
    level = logging.getLevelNamesMapping().get(name.upper())
    if level is None:
        raise ConfigurationError(f"LINGX_LOG_LEVEL must be a logging level name, got {name!r}")
    return level


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Initialise the root logger with a terse format suitable for CLI output.

    Pass ``force=True`` to reconfigure during tests.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    # per-request and per-migration INFO lines drown the reconciliation output
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
