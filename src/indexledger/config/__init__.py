"""Application configuration helpers."""

from __future__ import annotations

from .env import optional_float_env
from .errors import ConfigurationError
from .logging import configure_logging, resolve_log_level
from .monitor import MonitorConfig, get_monitor_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "MonitorConfig",
    "StorageConfig",
    "configure_logging",
    "get_database_config",
    "get_monitor_config",
    "get_storage_config",
    "optional_float_env",
    "resolve_log_level",
]
