"""Shared logging helpers."""

from __future__ import annotations

import logging
import os
from typing import Final

from .errors import ConfigurationError

LOG_LEVEL_ENV: Final[str] = "INDEXLEDGER_LOG_LEVEL"


def resolve_log_level(default: int = logging.INFO) -> int:
    """Return the level named by ``INDEXLEDGER_LOG_LEVEL`` or ``default``."""

    raw = os.getenv(LOG_LEVEL_ENV)
    if raw is None or not raw.strip():
        return default
    level = logging.getLevelNamesMapping().get(raw.strip().upper())
    if level is None:
        raise ConfigurationError(f"{LOG_LEVEL_ENV} names no logging level: {raw!r}")
    return level


def configure_logging(*, level: int | None = None, force: bool = False) -> None:
    """Initialise the root logger once with a terse CLI format.

    Without an explicit ``level`` the environment decides, falling back to INFO.
    Pass ``force=True`` to reconfigure during tests.
    """

    logging.basicConfig(
        level=resolve_log_level() if level is None else level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
