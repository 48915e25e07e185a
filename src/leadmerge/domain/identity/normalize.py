"""Canonical, comparable forms of raw contact fields.

Every function here is pure and total: any string (including the empty string)
normalizes to something, and normalizing a normalized value is a no-op.
Malformed input degrades to a conservative form instead of raising.

Email provider rules
--------------------
Only providers that document dot- or plus-insensitive mailboxes are listed.
Domain typo correction ("gmial.com") is deliberately absent: a wrong guess
links two different people, which is worse than a missed link.
"""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Mapping


DEFAULT_MIN_PHONE_DIGITS: Final[int] = 6


@dataclass(frozen=True, slots=True)
class EmailRule:
    """Which local-part characters a mail provider ignores."""

    ignore_dots: bool = False
    ignore_plus: bool = False
    canonical_domain: str | None = None


DEFAULT_EMAIL_RULES: Final[Mapping[str, EmailRule]] = MappingProxyType(
    {
        "gmail.com": EmailRule(ignore_dots=True, ignore_plus=True),
        "googlemail.com": EmailRule(
            ignore_dots=True, ignore_plus=True, canonical_domain="gmail.com"
        ),
        "outlook.com": EmailRule(ignore_plus=True),
        "hotmail.com": EmailRule(ignore_plus=True),
        "live.com": EmailRule(ignore_plus=True),
        "fastmail.com": EmailRule(ignore_plus=True),
    }
)

# Trailing generational/professional suffixes, as token sequences after
# punctuation has been turned into whitespace ("Ph.D." -> "ph d").
_NAME_SUFFIXES: Final[tuple[tuple[str, ...], ...]] = (
    ("ph", "d"),
    ("m", "d"),
    ("jr",),
    ("sr",),
    ("ii",),
    ("iii",),
    ("iv",),
    ("v",),
    ("phd",),
    ("md",),
    ("esq",),
)


@dataclass(frozen=True, slots=True)
class NormalizedName:
    full: str = ""
    first_token: str = ""
    last_token: str = ""
    tokens: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.tokens

    @property
    def is_full_name(self) -> bool:
        return len(self.tokens) > 1


@dataclass(frozen=True, slots=True)
class NormalizedIdentity:
    """Computation cache for one matching pass; never persisted."""

    email: str = ""
    phone: str = ""
    name: NormalizedName = field(default_factory=NormalizedName)


def normalize_email(
    value: str | None,
    rules: Mapping[str, EmailRule] = DEFAULT_EMAIL_RULES,
) -> str:
    """Lowercase an address and collapse provider-specific aliases.

    Anything without exactly one ``@`` is returned lowercased but otherwise
    untouched so that malformed raw data is never corrupted further.
    """

    if not value:
        return ""
    normalized = value.strip().lower()
    if normalized.count("@") != 1:
        return normalized

    local, domain = normalized.split("@")
    rule = rules.get(domain)
    if rule is None:
        return normalized

    if rule.ignore_plus:
        local = local.split("+", 1)[0]
    if rule.ignore_dots:
        local = local.replace(".", "")
    return f"{local}@{rule.canonical_domain or domain}"


def normalize_phone(value: str | None) -> str:
    """Keep ASCII digits only."""

    if not value:
        return ""
    return "".join(ch for ch in value if "0" <= ch <= "9")


def is_usable_phone(digits: str, min_digits: int = DEFAULT_MIN_PHONE_DIGITS) -> bool:
    return len(digits) >= min_digits


def normalize_name(value: str | None) -> NormalizedName:
    if not value:
        return NormalizedName()

    text = unicodedata.normalize("NFKC", value).casefold()
    text = unicodedata.normalize("NFKC", text)
    text = "".join(" " if unicodedata.category(ch).startswith("P") else ch for ch in text)
    tokens = _strip_suffixes(text.split())
    if not tokens:
        return NormalizedName()
    return NormalizedName(
        full=" ".join(tokens),
        first_token=tokens[0],
        last_token=tokens[-1],
        tokens=tokens,
    )


def normalize_company(value: str | None) -> str:
    if not value:
        return ""
    return " ".join(value.split()).casefold()


def _strip_suffixes(tokens: list[str]) -> tuple[str, ...]:
    remaining = list(tokens)
    stripped = True
    while stripped:
        stripped = False
        for suffix in _NAME_SUFFIXES:
            size = len(suffix)
            if len(remaining) > size and tuple(remaining[-size:]) == suffix:
                del remaining[-size:]
                stripped = True
                break
    return tuple(remaining)


@dataclass(frozen=True, slots=True, kw_only=True)
class Normalizer:
    """Normalization bound to one configured rule set."""

    email_rules: Mapping[str, EmailRule] = DEFAULT_EMAIL_RULES
    min_phone_digits: int = DEFAULT_MIN_PHONE_DIGITS

    def email(self, value: str | None) -> str:
        return normalize_email(value, self.email_rules)

    def phone(self, value: str | None) -> str:
        return normalize_phone(value)

    def usable_phone(self, value: str | None) -> str:
        """Normalized phone, or ``""`` when it is too short to identify anyone."""

        digits = normalize_phone(value)
        return digits if is_usable_phone(digits, self.min_phone_digits) else ""

    def name(self, value: str | None) -> NormalizedName:
        return normalize_name(value)

    def company(self, value: str | None) -> str:
        return normalize_company(value)

    def identity(
        self,
        *,
        email: str | None = None,
        phone: str | None = None,
        name: str | None = None,
    ) -> NormalizedIdentity:
        return NormalizedIdentity(
            email=self.email(email),
            phone=self.usable_phone(phone),
            name=self.name(name),
        )
