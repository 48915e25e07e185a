"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import IntEnum, StrEnum


class Confidence(IntEnum):
    """How certain a match is. Ordered so that ``>=`` compares certainty."""

    NONE = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    EXACT = 4

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def parse(cls, value: str) -> Confidence:
        try:
            return cls[value.strip().upper()]
        except KeyError as exc:
            choices = ", ".join(member.label for member in cls)
            raise ValueError(f"Unknown confidence {value!r} (expected one of: {choices})") from exc


class EmailMatch(StrEnum):
    """Email equality tiers between two raw addresses."""

    NONE = "none"
    EXACT = "exact"
    ALIAS = "alias"


class KeyKind(StrEnum):
    """Lookup index a normalized contact key belongs to."""

    EMAIL = "email"
    PHONE = "phone"
    COMPANY = "company"
