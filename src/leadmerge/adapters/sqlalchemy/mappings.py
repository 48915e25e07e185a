"""SQLAlchemy mapping metadata for canonical contacts."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING

from sqlalchemy import (
    Column,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    orm,
)

from leadmerge.domain.model import (
    DEFAULT_STATUS,
    LEAD_SOURCE_SEPARATOR,
    CanonicalContact,
    KeyKind,
    split_lead_sources,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class LeadSourceType(TypeDecorator[tuple[str, ...]]):
    """Lead source tags stored as the comma-joined ``lead_source`` column."""

    impl = String
    cache_ok = True

    def process_bind_param(self, value: tuple[str, ...] | None, dialect: Dialect) -> str:
        _ = dialect
        if not value:
            return ""
        return LEAD_SOURCE_SEPARATOR.join(value)

    def process_result_value(self, value: str | None, dialect: Dialect) -> tuple[str, ...]:
        _ = dialect
        return split_lead_sources(value)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

contact_table = Table(
    "contact",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String, nullable=False, default=""),
    Column("email", String, nullable=True),
    Column("phone", String, nullable=True),
    Column("company", String, nullable=True),
    Column("title", String, nullable=True),
    Column("lead_source", LeadSourceType(), key="lead_sources", nullable=False, default=()),
    Column("status", String, nullable=False, default=DEFAULT_STATUS),
    Column("notes", Text, nullable=True),
    Column("last_activity_date", UTCDateTime(), nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
)

# One row per (contact, key kind); rewritten whenever the contact changes.
contact_key_table = Table(
    "contact_key",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "contact_id",
        Integer,
        ForeignKey("contact.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("kind", Enum(KeyKind, native_enum=False), nullable=False),
    Column("key", String, nullable=False),
    UniqueConstraint("contact_id", "kind"),
    Index("ix_contact_key_kind_key", "kind", "key"),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")
    mapper_registry.map_imperatively(CanonicalContact, contact_table)
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
