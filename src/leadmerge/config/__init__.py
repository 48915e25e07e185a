"""Application configuration helpers."""

from __future__ import annotations

from .env import optional_choice, optional_int, optional_list
from .errors import ConfigurationError
from .logging import configure_logging
from .matching import MatchingConfig, get_matching_config
from .resolve import ResolveConfig, get_resolve_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "MatchingConfig",
    "ResolveConfig",
    "StorageConfig",
    "configure_logging",
    "get_database_config",
    "get_matching_config",
    "get_resolve_config",
    "get_storage_config",
    "optional_choice",
    "optional_int",
    "optional_list",
]
