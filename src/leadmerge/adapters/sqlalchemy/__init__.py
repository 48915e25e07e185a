"""SQLAlchemy adapter package for leadmerge."""

from __future__ import annotations

from .mappings import (
    LeadSourceType,
    UTCDateTime,
    contact_key_table,
    contact_table,
    create_all_tables,
    mapper_registry,
    start_mappers,
)
from .repositories import SqlAlchemyContactRepository, storage_errors
from .unit_of_work import (
    SqlAlchemyContactUnitOfWork,
    StartupError,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "LeadSourceType",
    "SqlAlchemyContactRepository",
    "SqlAlchemyContactUnitOfWork",
    "StartupError",
    "UTCDateTime",
    "contact_key_table",
    "contact_table",
    "create_all_tables",
    "is_started",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
    "storage_errors",
]
