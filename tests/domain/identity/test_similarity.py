from __future__ import annotations

import pytest

from leadmerge.domain.identity.nicknames import are_nicknames, canonical_given_names
from leadmerge.domain.identity.normalize import Normalizer, normalize_name
from leadmerge.domain.identity.similarity import (
    CONTAINMENT_SCORE,
    IDENTICAL_SCORE,
    INITIAL_FORMAT_SCORE,
    NICKNAME_FULL_SCORE,
    NICKNAME_PARTIAL_SCORE,
    bigram_jaccard,
    companies_equal,
    email_match,
    is_initial_format,
    name_similarity,
    phones_equal,
)
from leadmerge.domain.model import EmailMatch


def _score(first: str, second: str) -> float:
    return name_similarity(normalize_name(first), normalize_name(second))


@pytest.mark.parametrize(
    ("first", "second", "expected"),
    [
        ("John Smith", "john  smith", IDENTICAL_SCORE),
        ("John", "John Smith", CONTAINMENT_SCORE),
        ("Bob Smith", "Robert Smith", NICKNAME_FULL_SCORE),
        ("Bob", "Robert Smith", NICKNAME_PARTIAL_SCORE),
        ("Bob Jones", "Robert Smith", NICKNAME_PARTIAL_SCORE),
        ("J. Smith", "John Smith", INITIAL_FORMAT_SCORE),
        ("", "John Smith", 0.0),
    ],
)
def test_name_similarity_cascade(first: str, second: str, expected: float) -> None:
    assert _score(first, second) == pytest.approx(expected)


def test_name_similarity_is_symmetric_for_nicknames() -> None:
    assert _score("William Gates", "Bill Gates") == _score("Bill Gates", "William Gates")


def test_name_similarity_falls_back_to_bigrams() -> None:
    score = _score("Jon Smyth", "John Smith")

    assert 0.0 < score < 0.7
    assert _score("Alice", "Bob") == 0.0


def test_bigram_jaccard_bounds() -> None:
    assert bigram_jaccard("abc", "abc") == 1.0
    assert bigram_jaccard("a", "b") == 0.0
    assert bigram_jaccard("night", "nacht") == pytest.approx(1 / 7)


def test_initial_format_requires_shared_last_name() -> None:
    assert is_initial_format(normalize_name("J Doe"), normalize_name("Jane Doe"))
    assert not is_initial_format(normalize_name("J Doe"), normalize_name("Jane Roe"))
    assert not is_initial_format(normalize_name("J"), normalize_name("Jane"))
    assert not is_initial_format(normalize_name("K Doe"), normalize_name("Jane Doe"))


def test_nicknames() -> None:
    assert are_nicknames("bob", "robert")
    assert are_nicknames("bobby", "rob")
    assert are_nicknames("alex", "alexandra")
    assert not are_nicknames("bob", "bob")
    assert not are_nicknames("bob", "william")
    assert not are_nicknames("", "robert")
    assert canonical_given_names("steve") == frozenset({"stephen", "steven"})


def test_email_match_tiers() -> None:
    normalizer = Normalizer()

    assert email_match("JDoe@gmail.com", "jdoe@gmail.com", normalizer) is EmailMatch.EXACT
    assert email_match("j.doe+x@gmail.com", "jdoe@gmail.com", normalizer) is EmailMatch.ALIAS
    assert email_match("jdoe@example.com", "jdoe@gmail.com", normalizer) is EmailMatch.NONE
    assert email_match(None, "jdoe@gmail.com", normalizer) is EmailMatch.NONE


def test_phones_equal_ignores_formatting_but_not_short_numbers() -> None:
    assert phones_equal("(555) 123-4567", "555.123.4567", 6)
    assert not phones_equal("12345", "12345", 6)
    assert not phones_equal("5551234567", "5551234568", 6)


def test_companies_equal() -> None:
    assert companies_equal("Acme  Corp", "acme corp")
    assert not companies_equal("", "")
    assert not companies_equal("Acme", "Acme Inc")
