"""Field-level merge policy for a matched contact and new data.

The policy is asymmetric: the existing canonical contact generally wins, so a
lower-confidence source never silently overwrites verified data. It runs only
after the matcher has decided a link is appropriate.

Every field is handled explicitly in ``_merged`` so adding a field to
``CanonicalContact`` without a rule fails loudly instead of being copied by
accident.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC
from typing import TYPE_CHECKING, Final

from leadmerge.domain.model import CanonicalContact, union_lead_sources

from .normalize import Normalizer, normalize_phone

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime

    from leadmerge.domain.model import RawRecord


DEFAULT_SALES_STAGES: Final[frozenset[str]] = frozenset({"opportunity", "customer", "deal"})
NOTES_DELIMITER: Final[str] = "\n\n"


@dataclass(frozen=True, slots=True, kw_only=True)
class _Incoming:
    """The side being merged in, whether it comes from a record or a contact."""

    name: str | None
    email: str | None
    phone: str | None
    company: str | None
    title: str | None
    lead_sources: tuple[str, ...]
    status: str | None
    notes: str | None
    activity_at: datetime | None


@dataclass(frozen=True, slots=True, kw_only=True)
class MergePolicy:
    normalizer: Normalizer = field(default_factory=Normalizer)
    sales_stages: frozenset[str] = DEFAULT_SALES_STAGES
    notes_delimiter: str = NOTES_DELIMITER

    def merge(self, existing: CanonicalContact, incoming: RawRecord) -> CanonicalContact:
        """Merge a raw observation into ``existing`` and return the new state."""

        return self._merged(
            existing,
            _Incoming(
                name=incoming.name,
                email=incoming.email,
                phone=incoming.phone,
                company=incoming.company,
                title=incoming.title,
                lead_sources=(incoming.lead_source_tag,),
                status=incoming.status,
                notes=incoming.notes,
                activity_at=incoming.activity_at,
            ),
        )

    def absorb(self, primary: CanonicalContact, duplicate: CanonicalContact) -> CanonicalContact:
        """Fold a duplicate canonical contact into ``primary`` with the same rules."""

        return self._merged(
            primary,
            _Incoming(
                name=duplicate.name,
                email=duplicate.email,
                phone=duplicate.phone,
                company=duplicate.company,
                title=duplicate.title,
                lead_sources=duplicate.lead_sources,
                status=duplicate.status,
                notes=duplicate.notes,
                activity_at=duplicate.last_activity_date,
            ),
        )

    def _merged(self, existing: CanonicalContact, incoming: _Incoming) -> CanonicalContact:
        return CanonicalContact(
            id=existing.id,
            name=self._merge_name(existing.name, incoming.name),
            email=_keep_existing(existing.email, incoming.email),
            phone=_merge_phone(existing.phone, incoming.phone),
            company=_keep_existing(existing.company, incoming.company),
            title=_keep_existing(existing.title, incoming.title),
            lead_sources=union_lead_sources(existing.lead_sources, incoming.lead_sources),
            status=self._merge_status(existing.status, incoming.status),
            notes=self._merge_notes(existing.notes, incoming.notes),
            last_activity_date=_latest((existing.last_activity_date, incoming.activity_at)),
            created_at=existing.created_at,
        )

    def _merge_name(self, existing: str, incoming: str | None) -> str:
        incoming_name = _clean(incoming)
        if incoming_name is None:
            return existing
        if not existing.strip():
            return incoming_name
        existing_full = self.normalizer.name(existing).is_full_name
        incoming_full = self.normalizer.name(incoming_name).is_full_name
        if existing_full != incoming_full:
            return existing if existing_full else incoming_name
        # Longer string as a proxy for "more complete" (middle names, suffixes).
        return incoming_name if len(incoming_name) > len(existing.strip()) else existing

    def _merge_status(self, existing: str, incoming: str | None) -> str:
        if existing.strip().lower() in self.sales_stages:
            return existing
        return _clean(incoming) or existing

    def _merge_notes(self, existing: str | None, incoming: str | None) -> str | None:
        incoming_notes = _clean(incoming)
        if incoming_notes is None:
            return existing
        if not existing or not existing.strip():
            return incoming_notes
        entries = (entry.strip() for entry in existing.split(self.notes_delimiter))
        if incoming_notes in entries:
            return existing
        return f"{existing}{self.notes_delimiter}{incoming_notes}"


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _keep_existing(existing: str | None, incoming: str | None) -> str | None:
    return existing if _clean(existing) is not None else _clean(incoming)


def _merge_phone(existing: str | None, incoming: str | None) -> str | None:
    incoming_phone = _clean(incoming)
    if incoming_phone is None:
        return existing
    existing_digits = normalize_phone(existing)
    if not existing_digits or len(normalize_phone(incoming_phone)) > len(existing_digits):
        return incoming_phone
    return existing


def _latest(values: Iterable[datetime | None]) -> datetime | None:
    present = [_as_utc(value) for value in values if value is not None]
    return max(present, default=None)


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
