"""Resolution coordinator: match, then merge into or create a canonical contact.

Responsibilities of this stage:
- run the matcher against the current canonical contact set
- gate the decision on the caller's ``min_confidence``
- persist the merged or newly created contact inside one unit of work
- hold the record's identity fingerprints for the whole read-decide-write
  sequence, so two concurrent calls for the same new person cannot both
  create a contact (records without an email or phone, and name-only
  thresholds, run alone)

Re-running ``resolve`` for the same record is safe: the outcome depends only
on the stored contacts and the record.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from leadmerge.domain.model import Confidence, ContactFields

from .errors import AmbiguousMatchWarning, StorageError, ValidationError
from .locks import FingerprintLocks, identity_fingerprints
from .match import Matcher, MatchResult
from .merge import MergePolicy

if TYPE_CHECKING:
    from leadmerge.domain.model import CanonicalContact, RawRecord
    from leadmerge.domain.ports import ContactRepository, ContactUnitOfWork

log = logging.getLogger(__name__)

type UnitOfWorkFactory = Callable[[], ContactUnitOfWork]


@dataclass(frozen=True, slots=True)
class Resolution:
    contact: CanonicalContact
    created: bool
    reason: str
    match: MatchResult
    warning: AmbiguousMatchWarning | None = None


@dataclass(slots=True, kw_only=True)
class ResolutionCoordinator:
    unit_of_work_factory: UnitOfWorkFactory
    matcher: Matcher = field(default_factory=Matcher)
    merge_policy: MergePolicy = field(default_factory=MergePolicy)
    locks: FingerprintLocks = field(default_factory=FingerprintLocks)

    def find_best_match(self, record: RawRecord) -> MatchResult:
        """Preview linkage for ``record`` without touching storage state."""

        with self.unit_of_work_factory() as uow:
            return self.matcher.find_best_match(record, uow.repositories.contacts)

    def resolve(
        self,
        record: RawRecord,
        min_confidence: Confidence = Confidence.MEDIUM,
        *,
        update_if_found: bool = True,
    ) -> Resolution:
        """Link ``record`` to its canonical contact, creating one if needed.

        Raises:
            ValidationError: no acceptable match and the record has neither
                a name nor an email to identify a new contact by.
            StorageError: the storage collaborator failed or rejected the
                commit because the contact changed concurrently; nothing was
                written.
        """

        fingerprints = identity_fingerprints(record, self.matcher.normalizer)
        # A name-only decision can land on any contact.
        exclusive = min_confidence <= Confidence.LOW
        with (
            self.locks.hold(fingerprints, exclusive=exclusive),
            self.unit_of_work_factory() as uow,
        ):
            contacts = uow.repositories.contacts
            match = self.matcher.find_best_match(record, contacts)

            if match.contact is not None and match.confidence >= min_confidence:
                resolution = self._link(record, match, contacts, update_if_found=update_if_found)
            else:
                resolution = self._create(record, match, contacts)
            uow.commit()
            return resolution

    def _link(
        self,
        record: RawRecord,
        match: MatchResult,
        contacts: ContactRepository,
        *,
        update_if_found: bool,
    ) -> Resolution:
        existing = match.contact
        if existing is None or existing.id is None:
            raise StorageError("Matched contact has no persistent identity")

        warning: AmbiguousMatchWarning | None = None
        if match.is_ambiguous:
            warning = AmbiguousMatchWarning(existing.id, match.confidence.label, match.reason)
            log.warning("%s", warning)

        if not update_if_found:
            return Resolution(
                contact=existing,
                created=False,
                reason=match.reason,
                match=match,
                warning=warning,
            )

        merged = self.merge_policy.merge(existing, record)
        updated = contacts.update(existing.id, ContactFields.from_contact(merged))
        if updated is None:
            raise StorageError(f"Contact {existing.id} disappeared before it could be updated")
        log.info(
            "Merged record from %s into contact_id=%s (%s, %s)",
            record.lead_source_tag,
            updated.id,
            match.confidence.label,
            match.reason,
        )
        return Resolution(
            contact=updated,
            created=False,
            reason=match.reason,
            match=match,
            warning=warning,
        )

    def _create(
        self,
        record: RawRecord,
        match: MatchResult,
        contacts: ContactRepository,
    ) -> Resolution:
        if not record.is_identifiable:
            raise ValidationError(
                f"Cannot create a contact from {record.lead_source_tag} record "
                "without a name or an email"
            )
        created = contacts.create(ContactFields.from_record(record))
        log.info(
            "Created contact_id=%s from %s record (best match: %s)",
            created.id,
            record.lead_source_tag,
            match.confidence.label,
        )
        return Resolution(contact=created, created=True, reason="new_contact_created", match=match)
