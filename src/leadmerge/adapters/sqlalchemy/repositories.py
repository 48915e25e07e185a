"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

from sqlalchemy import delete, insert, select
from sqlalchemy.exc import SQLAlchemyError

from leadmerge.adapters.sqlalchemy.mappings import contact_key_table, contact_table
from leadmerge.domain.identity.errors import StorageError
from leadmerge.domain.identity.index import contact_keys
from leadmerge.domain.identity.normalize import Normalizer
from leadmerge.domain.model import CanonicalContact, KeyKind

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.orm import Session

    from leadmerge.domain.model import ContactFields

log = logging.getLogger(__name__)


@contextmanager
def storage_errors(action: str) -> Iterator[None]:
    """Re-raise driver and ORM failures as ``StorageError``."""

    try:
        yield
    except SQLAlchemyError as exc:
        raise StorageError(f"Failed to {action}: {exc}") from exc


class SqlAlchemyContactRepository:
    def __init__(self, session: Session, normalizer: Normalizer | None = None) -> None:
        self.session = session
        self.normalizer = normalizer or Normalizer()

    def list_all(self) -> list[CanonicalContact]:
        stmt = select(CanonicalContact).order_by(contact_table.c.id)
        with storage_errors("list contacts"):
            return list(self.session.execute(stmt).scalars().all())

    def get(self, contact_id: int) -> CanonicalContact | None:
        with storage_errors(f"load contact {contact_id}"):
            return self.session.get(CanonicalContact, contact_id)

    def find_by_email_key(self, key: str) -> list[CanonicalContact]:
        return self._find_by_key(KeyKind.EMAIL, key)

    def find_by_phone_key(self, key: str) -> list[CanonicalContact]:
        return self._find_by_key(KeyKind.PHONE, key)

    def find_by_company_key(self, key: str) -> list[CanonicalContact]:
        return self._find_by_key(KeyKind.COMPANY, key)

    def create(self, fields: ContactFields) -> CanonicalContact:
        contact = fields.build()
        with storage_errors("create contact"):
            self.session.add(contact)
            self.session.flush()
            self._write_keys(contact)
        return contact

    def update(self, contact_id: int, fields: ContactFields) -> CanonicalContact | None:
        contact = self.get(contact_id)
        if contact is None:
            return None
        fields.apply_to(contact)
        with storage_errors(f"update contact {contact_id}"):
            self.session.flush()
            self._write_keys(contact)
        return contact

    def rebuild_keys(self) -> int:
        """Re-derive every lookup key, e.g. after a normalization rule change."""

        contacts = self.list_all()
        with storage_errors("rebuild contact keys"):
            self.session.execute(delete(contact_key_table))
            for contact in contacts:
                self._insert_keys(contact)
        log.info("Rebuilt lookup keys for %s contacts", len(contacts))
        return len(contacts)

    def _find_by_key(self, kind: KeyKind, key: str) -> list[CanonicalContact]:
        if not key:
            return []
        stmt = (
            select(CanonicalContact)
            .join(contact_key_table, contact_key_table.c.contact_id == contact_table.c.id)
            .where(contact_key_table.c.kind == kind)
            .where(contact_key_table.c.key == key)
            .order_by(contact_table.c.id)
        )
        with storage_errors(f"look up contacts by {kind} key"):
            return list(self.session.execute(stmt).scalars().all())

    def _write_keys(self, contact: CanonicalContact) -> None:
        self.session.execute(
            delete(contact_key_table).where(contact_key_table.c.contact_id == contact.id)
        )
        self._insert_keys(contact)

    def _insert_keys(self, contact: CanonicalContact) -> None:
        rows = [
            {"contact_id": contact.id, "kind": kind, "key": key}
            for kind, key in contact_keys(contact, self.normalizer).items()
        ]
        if rows:
            self.session.execute(insert(contact_key_table), rows)
