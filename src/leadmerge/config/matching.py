"""Matching and merge tuning read from the environment."""

from __future__ import annotations

from dataclasses import dataclass

from leadmerge.domain.identity.consolidate import DEFAULT_SOURCE_PRECEDENCE
from leadmerge.domain.identity.match import Matcher
from leadmerge.domain.identity.merge import DEFAULT_SALES_STAGES, MergePolicy
from leadmerge.domain.identity.normalize import DEFAULT_MIN_PHONE_DIGITS, Normalizer
from leadmerge.domain.model import Confidence

from .env import optional_choice, optional_int, optional_list

DEFAULT_MIN_CONFIDENCE = Confidence.MEDIUM


@dataclass(frozen=True, slots=True)
class MatchingConfig:
    min_phone_digits: int = DEFAULT_MIN_PHONE_DIGITS
    min_confidence: Confidence = DEFAULT_MIN_CONFIDENCE
    sales_stages: frozenset[str] = DEFAULT_SALES_STAGES
    source_precedence: tuple[str, ...] = DEFAULT_SOURCE_PRECEDENCE

    def build_normalizer(self) -> Normalizer:
        return Normalizer(min_phone_digits=self.min_phone_digits)

    def build_matcher(self) -> Matcher:
        return Matcher(normalizer=self.build_normalizer())

    def build_merge_policy(self) -> MergePolicy:
        return MergePolicy(normalizer=self.build_normalizer(), sales_stages=self.sales_stages)


def get_matching_config() -> MatchingConfig:
    return MatchingConfig(
        min_phone_digits=optional_int(
            "LEADMERGE_MIN_PHONE_DIGITS", DEFAULT_MIN_PHONE_DIGITS, minimum=1
        ),
        min_confidence=optional_choice(
            "LEADMERGE_MIN_CONFIDENCE", DEFAULT_MIN_CONFIDENCE, Confidence.parse
        ),
        sales_stages=frozenset(
            optional_list("LEADMERGE_SALES_STAGES", sorted(DEFAULT_SALES_STAGES))
        ),
        source_precedence=optional_list("LEADMERGE_SOURCE_PRECEDENCE", DEFAULT_SOURCE_PRECEDENCE),
    )
