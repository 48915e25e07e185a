"""Root logger setup for leadmerge entry points."""

from __future__ import annotations

import logging
from typing import Final

from .env import optional_choice

LOG_LEVEL_VAR: Final[str] = "LEADMERGE_LOG_LEVEL"

# SQLAlchemy logs statements at INFO; they are only wanted when debugging.
_SQL_LOGGERS: Final[tuple[str, ...]] = ("sqlalchemy.engine", "sqlalchemy.pool")


def _parse_level(value: str) -> int:
    level = logging.getLevelNamesMapping().get(value.upper())
    if level is None:
        raise ValueError(f"unknown log level {value!r}")
    return level


def configure_logging(*, level: int | None = None, force: bool = False) -> int:
    """Configure the root logger and return the level in effect.

    ``level`` defaults to ``LEADMERGE_LOG_LEVEL`` (a level name such as
    ``debug``), then INFO. SQL statement logging is enabled only at DEBUG.
    """

    resolved = level if level is not None else optional_choice(
        LOG_LEVEL_VAR, logging.INFO, _parse_level
    )
    logging.basicConfig(
        level=resolved,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    sql_level = logging.INFO if resolved <= logging.DEBUG else logging.WARNING
    for name in _SQL_LOGGERS:
        logging.getLogger(name).setLevel(sql_level)
    return resolved
