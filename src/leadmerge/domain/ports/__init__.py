"""Ports the identity engine consumes from its storage collaborator."""

from __future__ import annotations

from .persistence import ContactLookup, ContactRepository, ReindexableContactRepository
from .unit_of_work import ContactRepositories, ContactUnitOfWork

__all__ = [
    "ContactLookup",
    "ContactRepositories",
    "ContactRepository",
    "ContactUnitOfWork",
    "ReindexableContactRepository",
]
