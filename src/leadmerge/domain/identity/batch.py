"""Resolve a stream of records from one ingestion run."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from leadmerge.domain.model import Confidence

from .errors import StorageError, ValidationError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from leadmerge.domain.model import RawRecord

    from .resolve import ResolutionCoordinator

log = logging.getLogger(__name__)

DEFAULT_PROGRESS_INTERVAL = 200


@dataclass(slots=True)
class BatchResult:
    processed: int = 0
    matched: int = 0
    created: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list["str"])
    next_offset: int = 0


def resolve_batch(
    coordinator: ResolutionCoordinator,
    records: Iterable[RawRecord | ValidationError],
    *,
    min_confidence: Confidence = Confidence.MEDIUM,
    offset: int = 0,
    update_if_found: bool = True,
    progress_interval: int = DEFAULT_PROGRESS_INTERVAL,
) -> BatchResult:
    """Resolve ``records`` one by one, starting at position ``offset``.

    A record without a name or email, or an input entry that already failed
    validation (a ``ValidationError`` in place of the record), is skipped and
    logged. A storage failure aborts the batch; ``offset`` of the failing
    record is logged so the run can be retried from that point (resolution is
    idempotent).
    """

    if offset < 0:
        raise ValueError("offset must be non-negative")

    result = BatchResult(next_offset=offset)
    for position, record in enumerate(records):
        if position < offset:
            continue
        if isinstance(record, ValidationError):
            _skip(result, position, record)
            _advance(result, position, progress_interval)
            continue
        try:
            resolution = coordinator.resolve(
                record,
                min_confidence,
                update_if_found=update_if_found,
            )
        except ValidationError as exc:
            _skip(result, position, exc)
        except StorageError:
            log.exception("Storage failure at record %s; retry with offset=%s", position, position)
            raise
        else:
            if resolution.created:
                result.created += 1
            else:
                result.matched += 1
        _advance(result, position, progress_interval)

    log.info(
        "Finished batch: processed=%s, matched=%s, created=%s, skipped=%s",
        result.processed,
        result.matched,
        result.created,
        result.skipped,
    )
    return result


def _skip(result: BatchResult, position: int, error: ValidationError) -> None:
    result.skipped += 1
    result.errors.append(f"record {position}: {error}")
    log.warning("Skipping record %s: %s", position, error)


def _advance(result: BatchResult, position: int, progress_interval: int) -> None:
    result.processed += 1
    result.next_offset = position + 1
    if progress_interval > 0 and result.processed % progress_interval == 0:
        log.info(
            "Resolved %s records (matched=%s, created=%s, skipped=%s)",
            result.processed,
            result.matched,
            result.created,
            result.skipped,
        )
