"""Ports for persisting canonical contacts."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from leadmerge.domain.model import CanonicalContact, ContactFields


@runtime_checkable
class ContactLookup(Protocol):
    """Read-only, indexed view of the canonical contact set.

    Every method returns contacts ordered by ascending id.
    """

    def list_all(self) -> list[CanonicalContact]: ...

    def find_by_email_key(self, key: str) -> list[CanonicalContact]: ...

    def find_by_phone_key(self, key: str) -> list[CanonicalContact]: ...

    def find_by_company_key(self, key: str) -> list[CanonicalContact]: ...


@runtime_checkable
class ContactRepository(ContactLookup, Protocol):
    """Persistence contract for canonical contacts."""

    def get(self, contact_id: int) -> CanonicalContact | None: ...

    def create(self, fields: ContactFields) -> CanonicalContact: ...

    def update(self, contact_id: int, fields: ContactFields) -> CanonicalContact | None: ...


@runtime_checkable
class ReindexableContactRepository(ContactRepository, Protocol):
    """Repository whose lookup keys can be re-derived from stored contacts."""

    def rebuild_keys(self) -> int: ...
