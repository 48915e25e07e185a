"""Domain model for contact identity resolution."""

from __future__ import annotations

from .contact import (
    DEFAULT_STATUS,
    LEAD_SOURCE_SEPARATOR,
    MERGED_STATUS,
    CanonicalContact,
    ContactFields,
    RawRecord,
    split_lead_sources,
    union_lead_sources,
)
from .enums import Confidence, EmailMatch, KeyKind

__all__ = [
    "DEFAULT_STATUS",
    "LEAD_SOURCE_SEPARATOR",
    "MERGED_STATUS",
    "CanonicalContact",
    "Confidence",
    "ContactFields",
    "EmailMatch",
    "KeyKind",
    "RawRecord",
    "split_lead_sources",
    "union_lead_sources",
]
