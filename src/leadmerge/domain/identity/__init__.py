"""Identity resolution: normalize, match, merge and persist contacts."""

from __future__ import annotations

from .batch import BatchResult, resolve_batch
from .consolidate import ConsolidationResult, DuplicateConsolidator
from .errors import AmbiguousMatchWarning, ResolutionError, StorageError, ValidationError
from .index import ContactIndex, contact_keys
from .locks import FingerprintLocks, identity_fingerprints
from .match import Matcher, MatchResult
from .merge import MergePolicy
from .normalize import Normalizer
from .resolve import Resolution, ResolutionCoordinator, UnitOfWorkFactory

__all__ = [
    "AmbiguousMatchWarning",
    "BatchResult",
    "ConsolidationResult",
    "ContactIndex",
    "DuplicateConsolidator",
    "FingerprintLocks",
    "MatchResult",
    "Matcher",
    "MergePolicy",
    "Normalizer",
    "Resolution",
    "ResolutionCoordinator",
    "ResolutionError",
    "StorageError",
    "UnitOfWorkFactory",
    "ValidationError",
    "contact_keys",
    "identity_fingerprints",
    "resolve_batch",
]
