"""Thread-safe in-memory contact storage.

Writes made through a repository are journaled and become visible to other
units of work only on commit, so a failed resolution leaves the store as it
was. Every stored contact carries a version; a commit that updates a contact
another unit of work changed after this one read it is rejected with
``StorageError`` instead of overwriting the other writer's merge.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Literal

from leadmerge.domain.identity.errors import StorageError
from leadmerge.domain.identity.index import ContactIndex, contact_keys
from leadmerge.domain.identity.normalize import Normalizer
from leadmerge.domain.model import KeyKind
from leadmerge.domain.ports.unit_of_work import ContactRepositories

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping
    from types import TracebackType

    from leadmerge.domain.model import CanonicalContact, ContactFields

    type _Predicate = Callable[[CanonicalContact], bool]
    type _Versioned = tuple[CanonicalContact, int]

log = logging.getLogger(__name__)


@dataclass(slots=True)
class InMemoryContactStore:
    normalizer: Normalizer = field(default_factory=Normalizer)
    _lock: threading.RLock = field(default_factory=threading.RLock)
    _contacts: dict[int, CanonicalContact] = field(default_factory=dict)
    _versions: dict[int, int] = field(default_factory=dict)
    _index: ContactIndex = field(default_factory=ContactIndex)
    _next_id: int = 1

    def __len__(self) -> int:
        with self._lock:
            return len(self._contacts)

    def allocate_id(self) -> int:
        with self._lock:
            contact_id = self._next_id
            self._next_id += 1
            return contact_id

    def snapshot(self) -> list[CanonicalContact]:
        return [contact for contact, _version in self.read_all()]

    def get(self, contact_id: int) -> CanonicalContact | None:
        found = self.read(contact_id)
        return found[0] if found is not None else None

    def lookup(self, kind: KeyKind, key: str) -> list[CanonicalContact]:
        return [contact for contact, _version in self.read_by_key(kind, key)]

    def read_all(self) -> list[_Versioned]:
        with self._lock:
            return [self._copy(contact_id) for contact_id in sorted(self._contacts)]

    def read(self, contact_id: int) -> _Versioned | None:
        with self._lock:
            if contact_id not in self._contacts:
                return None
            return self._copy(contact_id)

    def read_by_key(self, kind: KeyKind, key: str) -> list[_Versioned]:
        with self._lock:
            return [self._copy(contact_id) for contact_id in sorted(self._index.lookup(kind, key))]

    def apply(
        self,
        changes: Mapping[int, CanonicalContact],
        read_versions: Mapping[int, int],
    ) -> None:
        """Store and re-index every changed contact, atomically.

        ``read_versions`` holds the version each pre-existing contact had when
        the writer read it; any mismatch rejects the whole change set.
        """

        with self._lock:
            for contact_id in changes:
                if contact_id not in self._contacts:
                    continue
                if read_versions.get(contact_id) != self._versions[contact_id]:
                    raise StorageError(
                        f"Contact {contact_id} was changed by a concurrent commit; "
                        "resolve the record again"
                    )
            for contact_id, contact in changes.items():
                self._contacts[contact_id] = replace(contact)
                self._versions[contact_id] = self._versions.get(contact_id, 0) + 1
                self._index.put(contact_id, contact_keys(contact, self.normalizer))

    def rebuild_index(self) -> int:
        with self._lock:
            self._index.rebuild(
                (contact_id, contact_keys(contact, self.normalizer))
                for contact_id, contact in self._contacts.items()
            )
            return len(self._contacts)

    def _copy(self, contact_id: int) -> _Versioned:
        return replace(self._contacts[contact_id]), self._versions[contact_id]


class InMemoryContactRepository:
    def __init__(self, store: InMemoryContactStore) -> None:
        self.store = store
        self._pending: dict[int, CanonicalContact] = {}
        self._read_versions: dict[int, int] = {}

    def list_all(self) -> list[CanonicalContact]:
        return self._overlay(self.store.read_all(), lambda _contact: True)

    def get(self, contact_id: int) -> CanonicalContact | None:
        pending = self._pending.get(contact_id)
        if pending is not None:
            return pending
        found = self.store.read(contact_id)
        if found is None:
            return None
        return self._observe(*found)

    def find_by_email_key(self, key: str) -> list[CanonicalContact]:
        return self._find_by_key(KeyKind.EMAIL, key)

    def find_by_phone_key(self, key: str) -> list[CanonicalContact]:
        return self._find_by_key(KeyKind.PHONE, key)

    def find_by_company_key(self, key: str) -> list[CanonicalContact]:
        return self._find_by_key(KeyKind.COMPANY, key)

    def create(self, fields: ContactFields) -> CanonicalContact:
        contact_id = self.store.allocate_id()
        contact = fields.build(contact_id=contact_id)
        self._pending[contact_id] = contact
        return contact

    def update(self, contact_id: int, fields: ContactFields) -> CanonicalContact | None:
        current = self.get(contact_id)
        if current is None:
            return None
        updated = fields.apply_to(replace(current))
        self._pending[contact_id] = updated
        return updated

    def rebuild_keys(self) -> int:
        count = self.store.rebuild_index()
        log.info("Rebuilt lookup keys for %s contacts", count)
        return count

    def commit(self) -> None:
        self.store.apply(self._pending, self._read_versions)
        self._pending.clear()
        self._read_versions.clear()

    def rollback(self) -> None:
        self._pending.clear()
        self._read_versions.clear()

    def _observe(self, contact: CanonicalContact, version: int) -> CanonicalContact:
        # The first version seen is the one this unit of work decided on.
        if contact.id is not None:
            self._read_versions.setdefault(contact.id, version)
        return contact

    def _find_by_key(self, kind: KeyKind, key: str) -> list[CanonicalContact]:
        if not key:
            return []

        def matches(contact: CanonicalContact) -> bool:
            return contact_keys(contact, self.store.normalizer).get(kind) == key

        return self._overlay(self.store.read_by_key(kind, key), matches)

    def _overlay(
        self,
        committed: Iterable[_Versioned],
        matches: _Predicate,
    ) -> list[CanonicalContact]:
        merged: dict[int, CanonicalContact] = {}
        for contact, version in committed:
            if contact.id is not None and contact.id not in self._pending:
                merged[contact.id] = self._observe(contact, version)
        for contact_id, contact in self._pending.items():
            if matches(contact):
                merged[contact_id] = contact
        return [merged[contact_id] for contact_id in sorted(merged)]


class InMemoryUnitOfWork:
    """Unit of work over an ``InMemoryContactStore``."""

    def __init__(self, store: InMemoryContactStore) -> None:
        self.store = store
        self._repository: InMemoryContactRepository | None = None

    def __enter__(self) -> InMemoryUnitOfWork:
        self._repository = InMemoryContactRepository(self.store)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        self.rollback()
        self._repository = None
        return False

    @property
    def repositories(self) -> ContactRepositories:
        return ContactRepositories(contacts=self._require_repository())

    def commit(self) -> None:
        self._require_repository().commit()

    def rollback(self) -> None:
        if self._repository is not None:
            self._repository.rollback()

    def _require_repository(self) -> InMemoryContactRepository:
        if self._repository is None:
            raise RuntimeError("Unit of work used outside of its context")
        return self._repository


if TYPE_CHECKING:
    from leadmerge.domain.ports.unit_of_work import ContactUnitOfWork

    _uow_check: ContactUnitOfWork = InMemoryUnitOfWork(InMemoryContactStore())
