"""Find the canonical contact an incoming record most likely describes.

The matcher evaluates a priority cascade of tiers against a read-only,
indexed view of the canonical contacts:

1. email (normalized-email index)            -> EXACT
2. phone + name (phone index)                -> HIGH or MEDIUM
3. name + company (company index)            -> MEDIUM
4. name only (linear scan)                   -> LOW

The first tier that reaches a decision wins. Within a tier the highest score
wins and equal scores fall back to the lowest contact id, so the result is
deterministic for a fixed record and contact set.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from leadmerge.domain.model import Confidence

from .normalize import Normalizer
from .similarity import (
    NAME_ONLY_THRESHOLD,
    SIMILAR_NAME_THRESHOLD,
    is_initial_format,
    name_similarity,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from leadmerge.domain.model import CanonicalContact, RawRecord
    from leadmerge.domain.ports import ContactLookup

    from .normalize import NormalizedIdentity, NormalizedName

log = logging.getLogger(__name__)

EXACT_EMAIL_SCORE = 1.0
ALIAS_EMAIL_SCORE = 0.9


@dataclass(frozen=True, slots=True)
class MatchResult:
    confidence: Confidence
    contact: CanonicalContact | None
    reason: str
    score: float = 0.0

    @classmethod
    def no_match(cls) -> MatchResult:
        return cls(confidence=Confidence.NONE, contact=None, reason="no_match", score=0.0)

    @property
    def is_ambiguous(self) -> bool:
        return self.confidence in (Confidence.MEDIUM, Confidence.LOW)


type Scored = tuple[float, CanonicalContact]
type Tier = Callable[[RawRecord, NormalizedIdentity, ContactLookup], MatchResult | None]


def best_scored(scored: Iterable[Scored]) -> Scored | None:
    """Highest score first, lowest contact id on ties."""

    return min(scored, key=_rank, default=None)


def _rank(item: Scored) -> tuple[float, int]:
    score, contact = item
    return (-score, contact.id if contact.id is not None else -1)


def _live(contacts: Iterable[CanonicalContact]) -> list[CanonicalContact]:
    return [contact for contact in contacts if not contact.is_merged]


@dataclass(slots=True, kw_only=True)
class Matcher:
    normalizer: Normalizer = field(default_factory=Normalizer)
    similar_name_threshold: float = SIMILAR_NAME_THRESHOLD
    name_only_threshold: float = NAME_ONLY_THRESHOLD

    def find_best_match(self, record: RawRecord, contacts: ContactLookup) -> MatchResult:
        """Return the best match for ``record``; never mutates ``contacts``."""

        identity = self.normalizer.identity(
            email=record.email,
            phone=record.phone,
            name=record.name,
        )
        tiers: tuple[Tier, ...] = (
            self._match_email,
            self._match_phone,
            self._match_company,
            self._match_name,
        )
        for tier in tiers:
            result = tier(record, identity, contacts)
            if result is not None:
                log.debug(
                    "Matched record source=%s to contact_id=%s "
                    "confidence=%s reason=%s score=%.3f",
                    record.lead_source_tag,
                    result.contact.id if result.contact is not None else None,
                    result.confidence.label,
                    result.reason,
                    result.score,
                )
                return result
        return MatchResult.no_match()

    def _match_email(
        self,
        record: RawRecord,
        identity: NormalizedIdentity,
        contacts: ContactLookup,
    ) -> MatchResult | None:
        if not identity.email:
            return None
        raw_email = (record.email or "").strip().lower()
        scored = [
            (
                EXACT_EMAIL_SCORE
                if (contact.email or "").strip().lower() == raw_email
                else ALIAS_EMAIL_SCORE,
                contact,
            )
            for contact in _live(contacts.find_by_email_key(identity.email))
        ]
        best = best_scored(scored)
        if best is None:
            return None
        score, contact = best
        reason = "exact_email" if score == EXACT_EMAIL_SCORE else "normalized_email_alias"
        return MatchResult(confidence=Confidence.EXACT, contact=contact, reason=reason, score=score)

    def _match_phone(
        self,
        record: RawRecord,
        identity: NormalizedIdentity,
        contacts: ContactLookup,
    ) -> MatchResult | None:
        _ = record
        if not identity.phone:
            return None
        candidates = _live(contacts.find_by_phone_key(identity.phone))
        if not candidates:
            return None

        named = [(self._name_of(contact), contact) for contact in candidates]
        initial = best_scored(
            (name_similarity(identity.name, name), contact)
            for name, contact in named
            if is_initial_format(identity.name, name)
        )
        if initial is not None:
            score, contact = initial
            return MatchResult(
                confidence=Confidence.HIGH,
                contact=contact,
                reason="phone_initial_name",
                score=score,
            )

        best = best_scored(
            (name_similarity(identity.name, name), contact) for name, contact in named
        )
        if best is None:
            return None
        score, contact = best
        if score >= self.similar_name_threshold:
            return MatchResult(
                confidence=Confidence.HIGH,
                contact=contact,
                reason="phone_similar_name",
                score=score,
            )
        # Same line, different name: possibly another member of a shared phone.
        return MatchResult(
            confidence=Confidence.MEDIUM,
            contact=contact,
            reason="phone_divergent_name",
            score=score,
        )

    def _match_company(
        self,
        record: RawRecord,
        identity: NormalizedIdentity,
        contacts: ContactLookup,
    ) -> MatchResult | None:
        company = self.normalizer.company(record.company)
        if identity.name.is_empty or not company:
            return None
        best = best_scored(
            (name_similarity(identity.name, self._name_of(contact)), contact)
            for contact in _live(contacts.find_by_company_key(company))
        )
        if best is None or best[0] < self.similar_name_threshold:
            return None
        score, contact = best
        return MatchResult(
            confidence=Confidence.MEDIUM,
            contact=contact,
            reason="name_company",
            score=score,
        )

    def _match_name(
        self,
        record: RawRecord,
        identity: NormalizedIdentity,
        contacts: ContactLookup,
    ) -> MatchResult | None:
        _ = record
        if identity.name.is_empty:
            return None
        best = best_scored(
            (name_similarity(identity.name, self._name_of(contact)), contact)
            for contact in _live(contacts.list_all())
        )
        if best is None or best[0] < self.name_only_threshold:
            return None
        score, contact = best
        return MatchResult(
            confidence=Confidence.LOW,
            contact=contact,
            reason="name_only",
            score=score,
        )

    def _name_of(self, contact: CanonicalContact) -> NormalizedName:
        return self.normalizer.name(contact.name)
