"""Translate raw record payloads into domain records."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import ValidationError as PydanticValidationError

from leadmerge.domain.identity.errors import ValidationError
from leadmerge.domain.model import RawRecord

from .schema import RawRecordPayload

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from .schema import RawRecordInput

log = getLogger(__name__)


def _ensure_payload(payload: RawRecordInput) -> RawRecordPayload:
    if isinstance(payload, RawRecordPayload):
        return payload
    return RawRecordPayload.model_validate(payload)


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def translate_payload(payload: RawRecordInput) -> RawRecord:
    """Build a ``RawRecord``; naive timestamps are taken to be UTC."""

    model = _ensure_payload(payload)
    created_at = _as_utc(model.created_at) or datetime.now(UTC)
    return RawRecord(
        lead_source_tag=model.lead_source,
        name=model.name,
        email=model.email,
        phone=model.phone,
        company=model.company,
        title=model.title,
        notes=model.notes,
        status=model.status,
        last_activity_date=_as_utc(model.last_activity_date),
        created_at=created_at,
        metadata=model.extra_fields,
    )


def load_records(path: Path) -> Iterator[RawRecord | ValidationError]:
    """Yield one entry per non-blank JSON line of ``path``.

    A line that is not valid JSON or not a valid record yields a
    ``ValidationError`` naming the line number in place of its record, so a
    consumer can skip it and carry on with the rest of the file.
    """

    with path.open(encoding="utf-8") as handle:
        for line_number, line in enumerate(handle, start=1):
            if not line.strip():
                continue
            entry: RawRecord | ValidationError
            try:
                entry = translate_payload(json.loads(line))
            except (json.JSONDecodeError, PydanticValidationError) as exc:
                log.debug("Rejected line %s of %s", line_number, path)
                entry = ValidationError(f"{path}:{line_number}: invalid record: {exc}")
                entry.__cause__ = exc
            yield entry
