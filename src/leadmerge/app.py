"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from functools import partial
from logging import getLogger
from typing import TYPE_CHECKING

from leadmerge.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyContactUnitOfWork,
    is_started,
    startup,
)
from leadmerge.config import get_matching_config, get_resolve_config
from leadmerge.domain.identity import (
    DuplicateConsolidator,
    FingerprintLocks,
    ResolutionCoordinator,
    resolve_batch,
)
from leadmerge.domain.ports import ContactUnitOfWork, ReindexableContactRepository

if TYPE_CHECKING:
    from collections.abc import Iterable

    from leadmerge.config import MatchingConfig
    from leadmerge.domain.identity import (
        BatchResult,
        ConsolidationResult,
        MatchResult,
        ValidationError,
    )
    from leadmerge.domain.model import Confidence, RawRecord

UnitOfWorkFactory = Callable[[], ContactUnitOfWork]


log = getLogger(__name__)

# Shared by every coordinator built here so concurrent callers in one process
# serialize on the same identities.
_LOCKS = FingerprintLocks()


def _unit_of_work_factory(
    unit_of_work_factory: UnitOfWorkFactory | None,
    matching: MatchingConfig,
) -> UnitOfWorkFactory:
    if unit_of_work_factory is not None:
        return unit_of_work_factory
    if not is_started():
        startup()
    return partial(SqlAlchemyContactUnitOfWork, matching.build_normalizer())


def build_coordinator(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    matching: MatchingConfig | None = None,
) -> ResolutionCoordinator:
    config = matching or get_matching_config()
    return ResolutionCoordinator(
        unit_of_work_factory=_unit_of_work_factory(unit_of_work_factory, config),
        matcher=config.build_matcher(),
        merge_policy=config.build_merge_policy(),
        locks=_LOCKS,
    )


def resolve_records(
    records: Iterable[RawRecord | ValidationError],
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    matching: MatchingConfig | None = None,
    min_confidence: Confidence | None = None,
    offset: int = 0,
    update_if_found: bool = True,
) -> BatchResult:
    """Resolve every record against the canonical contact set.

    Entries that are a ``ValidationError`` (rejected input lines) are counted
    as skipped.
    """

    config = matching or get_matching_config()
    threshold = min_confidence if min_confidence is not None else config.min_confidence
    coordinator = build_coordinator(unit_of_work_factory=unit_of_work_factory, matching=config)
    log.info(
        "Starting resolution: min_confidence=%s, offset=%s, update_if_found=%s",
        threshold.label,
        offset,
        update_if_found,
    )
    return resolve_batch(
        coordinator,
        records,
        min_confidence=threshold,
        offset=offset,
        update_if_found=update_if_found,
        progress_interval=get_resolve_config().batch_size,
    )


def preview_matches(
    records: Iterable[RawRecord],
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    matching: MatchingConfig | None = None,
) -> list[MatchResult]:
    """Best match of every record, without writing anything."""

    coordinator = build_coordinator(unit_of_work_factory=unit_of_work_factory, matching=matching)
    return [coordinator.find_best_match(record) for record in records]


def consolidate_contacts(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    matching: MatchingConfig | None = None,
) -> ConsolidationResult:
    """Merge stored contacts that already share a normalized email."""

    config = matching or get_matching_config()
    consolidator = DuplicateConsolidator(
        unit_of_work_factory=_unit_of_work_factory(unit_of_work_factory, config),
        merge_policy=config.build_merge_policy(),
        source_precedence=config.source_precedence,
        locks=_LOCKS,
    )
    return consolidator.consolidate()


def reindex_contacts(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    matching: MatchingConfig | None = None,
) -> int:
    """Re-derive lookup keys of every stored contact; returns the contact count."""

    config = matching or get_matching_config()
    factory = _unit_of_work_factory(unit_of_work_factory, config)
    with factory() as uow:
        contacts = uow.repositories.contacts
        if not isinstance(contacts, ReindexableContactRepository):
            raise TypeError(f"{type(contacts).__name__} does not support rebuilding keys")
        count = contacts.rebuild_keys()
        uow.commit()
    return count
