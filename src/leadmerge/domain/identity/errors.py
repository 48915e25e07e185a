"""Failures surfaced by identity resolution.

Normalization and matching never raise; only identity-less creates and
storage faults reach the caller.
"""

from __future__ import annotations


class ResolutionError(Exception):
    """Base class for resolution failures."""


class ValidationError(ResolutionError, ValueError):
    """Raised when a record carries too little data to become a contact."""


class StorageError(ResolutionError):
    """Raised when the storage collaborator fails a read or write."""


class AmbiguousMatchWarning(UserWarning):
    """Attached to a resolution that accepted a MEDIUM or LOW match.

    Never raised: the caller decides through ``min_confidence`` whether such
    matches are acceptable and may inspect this note afterwards.
    """

    def __init__(self, contact_id: int | None, confidence_label: str, reason: str) -> None:
        self.contact_id = contact_id
        self.confidence_label = confidence_label
        self.reason = reason
        super().__init__(
            f"Accepted {confidence_label} match against contact {contact_id} ({reason})"
        )
