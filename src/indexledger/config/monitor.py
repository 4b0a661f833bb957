"""Finality monitor defaults."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Final

from .env import optional_float_env
from .errors import ConfigurationError

MIN_INTERVAL_ENV: Final[str] = "INDEXLEDGER_MONITOR_MIN_INTERVAL_SECONDS"
DEFAULT_MIN_INTERVAL: Final[timedelta] = timedelta(seconds=60)


@dataclass(frozen=True, slots=True)
class MonitorConfig:
    min_interval: timedelta = field(default=DEFAULT_MIN_INTERVAL)


def get_monitor_config() -> MonitorConfig:
    seconds = optional_float_env(MIN_INTERVAL_ENV)
    if seconds is None:
        return MonitorConfig()
    if seconds < 0:
        raise ConfigurationError(f"{MIN_INTERVAL_ENV} must be non-negative, got {seconds}")
    return MonitorConfig(min_interval=timedelta(seconds=seconds))
