"""Contact records: raw observations and the canonical identity they resolve to."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

DEFAULT_STATUS: Final[str] = "lead"
MERGED_STATUS: Final[str] = "merged"
LEAD_SOURCE_SEPARATOR: Final[str] = ","


def _utcnow() -> datetime:
    return datetime.now(UTC)


def split_lead_sources(value: str | None) -> tuple[str, ...]:
    """Parse a comma-joined lead source string into de-duplicated tags."""

    if not value:
        return ()
    return union_lead_sources((), value.split(LEAD_SOURCE_SEPARATOR))


def union_lead_sources(existing: Iterable[str], incoming: Iterable[str]) -> tuple[str, ...]:
    """Union two tag collections, keeping first-seen order and dropping blanks."""

    seen: set[str] = set()
    merged: list[str] = []
    for tag in (*existing, *incoming):
        cleaned = tag.strip().lower()
        if not cleaned or cleaned in seen:
            continue
        seen.add(cleaned)
        merged.append(cleaned)
    return tuple(merged)


@dataclass(frozen=True, slots=True, kw_only=True)
class RawRecord:
    """A partial, untrusted observation of a person produced by one source.

    Never persisted as-is; only consumed by resolution.
    """

    lead_source_tag: str
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    company: str | None = None
    title: str | None = None
    notes: str | None = None
    status: str | None = None
    last_activity_date: datetime | None = None
    created_at: datetime = field(default_factory=_utcnow)
    metadata: Mapping[str, object] = field(default_factory=dict["str", "object"])

    @property
    def activity_at(self) -> datetime:
        return self.last_activity_date or self.created_at

    @property
    def is_identifiable(self) -> bool:
        return bool((self.name or "").strip() or (self.email or "").strip())


@dataclass(eq=False, kw_only=True)
class CanonicalContact:
    """The durable, merged identity of one real-world person."""

    id: int | None = None
    name: str = ""
    email: str | None = None
    phone: str | None = None
    company: str | None = None
    title: str | None = None
    lead_sources: tuple[str, ...] = ()
    status: str = DEFAULT_STATUS
    notes: str | None = None
    last_activity_date: datetime | None = None
    created_at: datetime = field(default_factory=_utcnow)

    @property
    def lead_source(self) -> str:
        return LEAD_SOURCE_SEPARATOR.join(self.lead_sources)

    @property
    def sources_count(self) -> int:
        return len(self.lead_sources)

    @property
    def is_merged(self) -> bool:
        return self.status == MERGED_STATUS

    def __repr__(self) -> str:
        return f"CanonicalContact(id={self.id!r}, name={self.name!r}, email={self.email!r})"


@dataclass(frozen=True, slots=True, kw_only=True)
class ContactFields:
    """Writable fields of a canonical contact, used as create/update payload."""

    name: str
    email: str | None = None
    phone: str | None = None
    company: str | None = None
    title: str | None = None
    lead_sources: tuple[str, ...] = ()
    status: str = DEFAULT_STATUS
    notes: str | None = None
    last_activity_date: datetime | None = None

    @classmethod
    def from_contact(cls, contact: CanonicalContact) -> ContactFields:
        return cls(
            name=contact.name,
            email=contact.email,
            phone=contact.phone,
            company=contact.company,
            title=contact.title,
            lead_sources=contact.lead_sources,
            status=contact.status,
            notes=contact.notes,
            last_activity_date=contact.last_activity_date,
        )

    @classmethod
    def from_record(cls, record: RawRecord) -> ContactFields:
        """Fields of a brand new contact built from a single observation."""

        return cls(
            name=(record.name or "").strip(),
            email=_clean(record.email),
            phone=_clean(record.phone),
            company=_clean(record.company),
            title=_clean(record.title),
            lead_sources=union_lead_sources((), (record.lead_source_tag,)),
            status=_clean(record.status) or DEFAULT_STATUS,
            notes=_clean(record.notes),
            last_activity_date=record.activity_at,
        )

    def apply_to(self, contact: CanonicalContact) -> CanonicalContact:
        """Copy every field onto ``contact`` in place and return it."""

        contact.name = self.name
        contact.email = self.email
        contact.phone = self.phone
        contact.company = self.company
        contact.title = self.title
        contact.lead_sources = self.lead_sources
        contact.status = self.status
        contact.notes = self.notes
        contact.last_activity_date = self.last_activity_date
        return contact

    def build(
        self,
        *,
        contact_id: int | None = None,
        created_at: datetime | None = None,
    ) -> CanonicalContact:
        contact = CanonicalContact(id=contact_id, created_at=created_at or _utcnow())
        return self.apply_to(contact)


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None
