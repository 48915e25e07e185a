"""Pairwise similarity signals between a record and a canonical contact."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from leadmerge.domain.model import EmailMatch

from .nicknames import are_nicknames
from .normalize import is_usable_phone, normalize_company, normalize_phone

if TYPE_CHECKING:
    from .normalize import NormalizedName, Normalizer


SIMILAR_NAME_THRESHOLD: Final[float] = 0.7
NAME_ONLY_THRESHOLD: Final[float] = 0.85

IDENTICAL_SCORE: Final[float] = 1.0
CONTAINMENT_SCORE: Final[float] = 0.9
NICKNAME_FULL_SCORE: Final[float] = 0.95
NICKNAME_PARTIAL_SCORE: Final[float] = 0.8
INITIAL_FORMAT_SCORE: Final[float] = 0.85


def name_similarity(first: NormalizedName, second: NormalizedName) -> float:
    """Score two normalized names in ``[0, 1]``.

    The checks run as a cascade and the first one that applies decides:
    identical, containment, nickname, initial format, then bigram Jaccard.
    """

    if first.is_empty or second.is_empty:
        return 0.0
    if first.full == second.full:
        return IDENTICAL_SCORE
    if first.full in second.full or second.full in first.full:
        return CONTAINMENT_SCORE
    if are_nicknames(first.first_token, second.first_token):
        if first.is_full_name and second.is_full_name and first.last_token == second.last_token:
            return NICKNAME_FULL_SCORE
        return NICKNAME_PARTIAL_SCORE
    if is_initial_format(first, second):
        return INITIAL_FORMAT_SCORE
    return bigram_jaccard(first.full, second.full)


def is_initial_format(first: NormalizedName, second: NormalizedName) -> bool:
    """Detect "J. Doe" against "John Doe": a one-letter first token prefixing the other."""

    if not (first.is_full_name and second.is_full_name):
        return False
    if first.last_token != second.last_token:
        return False
    return _is_initial_of(first.first_token, second.first_token) or _is_initial_of(
        second.first_token, first.first_token
    )


def _is_initial_of(initial: str, token: str) -> bool:
    return len(initial) == 1 and len(token) > 1 and token.startswith(initial)


def bigram_jaccard(first: str, second: str) -> float:
    """Size of the shared character-bigram set over the size of their union."""

    first_bigrams = _bigrams(first)
    second_bigrams = _bigrams(second)
    union = first_bigrams | second_bigrams
    if not union:
        return 0.0
    return len(first_bigrams & second_bigrams) / len(union)


def _bigrams(value: str) -> set[str]:
    return {value[index : index + 2] for index in range(len(value) - 1)}


def phones_equal(first: str | None, second: str | None, min_digits: int) -> bool:
    first_digits = normalize_phone(first)
    if not is_usable_phone(first_digits, min_digits):
        return False
    return first_digits == normalize_phone(second)


def companies_equal(first: str | None, second: str | None) -> bool:
    first_key = normalize_company(first)
    return bool(first_key) and first_key == normalize_company(second)


def email_match(first: str | None, second: str | None, normalizer: Normalizer) -> EmailMatch:
    first_raw = (first or "").strip().lower()
    second_raw = (second or "").strip().lower()
    if not first_raw or not second_raw:
        return EmailMatch.NONE
    if first_raw == second_raw:
        return EmailMatch.EXACT
    if normalizer.email(first_raw) == normalizer.email(second_raw):
        return EmailMatch.ALIAS
    return EmailMatch.NONE
