"""Fold canonical contacts that already share an email into one survivor.

Resolution prevents new duplicates; this pass repairs data created before it
ran (or imported around it). Duplicates are never deleted: each one is marked
``merged`` with a note pointing at its survivor, which the matcher then skips.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from leadmerge.domain.model import MERGED_STATUS, CanonicalContact, ContactFields

from .errors import StorageError
from .locks import FingerprintLocks
from .merge import MergePolicy

if TYPE_CHECKING:
    from collections.abc import Sequence

    from leadmerge.domain.ports import ContactRepository

    from .resolve import UnitOfWorkFactory

log = logging.getLogger(__name__)

DEFAULT_SOURCE_PRECEDENCE: Final[tuple[str, ...]] = ("close", "calendly", "typeform")


@dataclass(slots=True)
class ConsolidationResult:
    groups: int = 0
    merged: int = 0
    primary_ids: list[int] = field(default_factory=list["int"])


@dataclass(slots=True, kw_only=True)
class DuplicateConsolidator:
    unit_of_work_factory: UnitOfWorkFactory
    merge_policy: MergePolicy = field(default_factory=MergePolicy)
    source_precedence: Sequence[str] = DEFAULT_SOURCE_PRECEDENCE
    locks: FingerprintLocks = field(default_factory=FingerprintLocks)

    def consolidate(self) -> ConsolidationResult:
        """Merge every group of live contacts sharing a normalized email.

        Runs with the locks held exclusively, so no resolution can merge into
        a contact while it is being folded.
        """

        result = ConsolidationResult()
        with self.locks.hold_exclusive(), self.unit_of_work_factory() as uow:
            contacts = uow.repositories.contacts
            for group in self._groups(contacts.list_all()):
                primary, *duplicates = sorted(group, key=self._precedence)
                self._fold(contacts, primary, duplicates)
                result.groups += 1
                result.merged += len(duplicates)
                if primary.id is not None:
                    result.primary_ids.append(primary.id)
            uow.commit()

        log.info("Consolidated %s groups, merged %s duplicates", result.groups, result.merged)
        return result

    def _groups(self, contacts: Sequence[CanonicalContact]) -> list[list[CanonicalContact]]:
        by_email: defaultdict[str, list[CanonicalContact]] = defaultdict(list)
        for contact in contacts:
            if contact.is_merged:
                continue
            key = self.merge_policy.normalizer.email(contact.email)
            if key:
                by_email[key].append(contact)
        return [group for _key, group in sorted(by_email.items()) if len(group) > 1]

    def _precedence(self, contact: CanonicalContact) -> tuple[int, int]:
        first_source = contact.lead_sources[0] if contact.lead_sources else ""
        try:
            rank = list(self.source_precedence).index(first_source)
        except ValueError:
            rank = len(self.source_precedence)
        return (rank, contact.id if contact.id is not None else -1)

    def _fold(
        self,
        contacts: ContactRepository,
        primary: CanonicalContact,
        duplicates: Sequence[CanonicalContact],
    ) -> None:
        if primary.id is None:
            raise StorageError("Cannot consolidate into a contact without an id")

        merged = primary
        for duplicate in duplicates:
            merged = self.merge_policy.absorb(merged, duplicate)
        if contacts.update(primary.id, ContactFields.from_contact(merged)) is None:
            raise StorageError(f"Contact {primary.id} disappeared during consolidation")

        for duplicate in duplicates:
            if duplicate.id is None:
                continue
            retired = CanonicalContact(
                id=duplicate.id,
                name=duplicate.name,
                email=duplicate.email,
                phone=duplicate.phone,
                company=duplicate.company,
                title=duplicate.title,
                lead_sources=duplicate.lead_sources,
                status=MERGED_STATUS,
                notes=f"Merged into contact ID {primary.id}",
                last_activity_date=duplicate.last_activity_date,
                created_at=duplicate.created_at,
            )
            if contacts.update(duplicate.id, ContactFields.from_contact(retired)) is None:
                raise StorageError(f"Contact {duplicate.id} disappeared during consolidation")
            log.info("Merged contact_id=%s into contact_id=%s", duplicate.id, primary.id)
