"""Location and connection settings of the contact database."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import optional_int

APP_DIR_NAME: Final[str] = "leadmerge"
DEFAULT_DB_FILENAME: Final[str] = "leadmerge.db"
DEFAULT_BUSY_TIMEOUT_SECONDS: Final[int] = 30


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path
    database_filename: str = DEFAULT_DB_FILENAME

    @property
    def database_path(self) -> Path:
        return self.data_dir / self.database_filename


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    """Connection settings handed to the SQLAlchemy adapter.

    Every SQLite unit of work holds the database write lock from its first
    statement, so a second writer waits up to ``busy_timeout`` seconds for it.
    """

    uri: str
    busy_timeout: int = DEFAULT_BUSY_TIMEOUT_SECONDS

    @property
    def is_sqlite(self) -> bool:
        return self.uri.startswith("sqlite")

    def engine_options(self) -> dict[str, object]:
        if self.is_sqlite:
            return {"connect_args": {"timeout": self.busy_timeout}}
        return {}


def _xdg_data_dir() -> Path:
    base = os.getenv("XDG_DATA_HOME")
    base_path = Path(base) if base else Path.home() / ".local" / "share"
    return base_path / APP_DIR_NAME


def get_storage_config() -> StorageConfig:
    env_dir = os.getenv("LEADMERGE_DATA_DIR")
    data_dir = Path(env_dir) if env_dir else _xdg_data_dir()
    return StorageConfig(data_dir=data_dir.expanduser().resolve())


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    """``DATABASE_URI`` if set, else a SQLite file in the data directory (created)."""

    busy_timeout = optional_int(
        "LEADMERGE_DB_BUSY_TIMEOUT", DEFAULT_BUSY_TIMEOUT_SECONDS, minimum=0
    )
    env_uri = os.getenv("DATABASE_URI")
    if env_uri:
        return DatabaseConfig(uri=env_uri, busy_timeout=busy_timeout)

    storage_config = storage or get_storage_config()
    storage_config.data_dir.mkdir(parents=True, exist_ok=True)
    return DatabaseConfig(
        uri=f"sqlite+pysqlite:///{storage_config.database_path}",
        busy_timeout=busy_timeout,
    )
