"""SQLAlchemy unit of work for contact resolution.

On SQLite each unit of work opens its transaction with ``BEGIN IMMEDIATE``, so
it holds the database write lock from its first read. The match-then-create
decision of one process therefore cannot interleave with another process's;
the second writer waits for the lock (see ``DatabaseConfig.busy_timeout``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar, Literal

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from leadmerge.adapters.sqlalchemy.mappings import create_all_tables, start_mappers
from leadmerge.adapters.sqlalchemy.repositories import SqlAlchemyContactRepository, storage_errors
from leadmerge.config.storage import get_database_config
from leadmerge.domain.ports.unit_of_work import ContactRepositories

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Connection, Engine

    from leadmerge.domain.identity.normalize import Normalizer

log = logging.getLogger(__name__)


class StartupError(RuntimeError):
    """The adapter was used before ``startup()`` or started twice."""


@dataclass(frozen=True, slots=True)
class _Database:
    engine: Engine
    session_factory: sessionmaker[Session]


class _Current:
    database: ClassVar[_Database | None] = None


def _begin_immediate(connection: Connection) -> None:
    connection.exec_driver_sql("BEGIN IMMEDIATE")


def _serialize_sqlite_writers(engine: Engine) -> None:
    if engine.dialect.name != "sqlite":
        return
    if not event.contains(engine, "begin", _begin_immediate):
        event.listen(engine, "begin", _begin_immediate)


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Bind the adapter to ``engine`` (or a new one) and create missing tables."""

    if _Current.database is not None and not force:
        raise StartupError("Contact database already started; pass force=True to rebind it")

    if engine is None:
        config = get_database_config()
        engine = create_engine(database_uri or config.uri, **config.engine_options())
    start_mappers()
    create_all_tables(engine)
    _serialize_sqlite_writers(engine)
    _Current.database = _Database(
        engine=engine,
        session_factory=sessionmaker(bind=engine, expire_on_commit=False),
    )
    log.debug("Contact database started on %s", engine.url.render_as_string(hide_password=True))


def is_started() -> bool:
    return _Current.database is not None


def shutdown() -> None:
    """Dispose the engine and forget it."""

    if _Current.database is not None:
        _Current.database.engine.dispose()
    _Current.database = None


class SqlAlchemyContactUnitOfWork:
    """One database transaction around a ``SqlAlchemyContactRepository``."""

    def __init__(self, normalizer: Normalizer | None = None) -> None:
        if _Current.database is None:
            raise StartupError(
                "Contact database not started. Call "
                "leadmerge.adapters.sqlalchemy.unit_of_work.startup() first."
            )
        self.session_factory = _Current.database.session_factory
        self.normalizer = normalizer
        self._session: Session | None = None
        self._repositories: ContactRepositories | None = None

    def __enter__(self) -> SqlAlchemyContactUnitOfWork:
        if self._session is not None:
            raise RuntimeError("Unit of work is already in use")
        self._session = self.session_factory()
        self._repositories = ContactRepositories(
            contacts=SqlAlchemyContactRepository(self._session, self.normalizer),
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        session = self.session
        try:
            if exc_type is not None:
                session.rollback()
        finally:
            # Closing releases the SQLite write lock of an uncommitted unit.
            session.close()
            self._session = None
            self._repositories = None
        return False

    @property
    def session(self) -> Session:
        if self._session is None:
            raise RuntimeError("Unit of work used outside of its context")
        return self._session

    @property
    def repositories(self) -> ContactRepositories:
        if self._repositories is None:
            raise RuntimeError("Unit of work used outside of its context")
        return self._repositories

    def commit(self) -> None:
        with storage_errors("commit unit of work"):
            self.session.commit()

    def rollback(self) -> None:
        with storage_errors("roll back unit of work"):
            self.session.rollback()


if TYPE_CHECKING:
    from leadmerge.domain.ports.unit_of_work import ContactUnitOfWork

    _uow_check: ContactUnitOfWork = SqlAlchemyContactUnitOfWork()
