"""Pydantic models describing raw contact records (one JSON object per line)."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime  # noqa: TC003
from typing import cast

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class RawRecordPayload(BaseModel):
    """One observation from a lead source; unknown keys are kept as extras."""

    model_config = ConfigDict(extra="allow", populate_by_name=True, coerce_numbers_to_str=True)

    lead_source: str = Field(alias="leadSource", min_length=1)
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    company: str | None = None
    title: str | None = None
    notes: str | None = None
    status: str | None = None
    last_activity_date: datetime | None = Field(default=None, alias="lastActivityDate")
    created_at: datetime | None = Field(default=None, alias="createdAt")

    @model_validator(mode="before")
    @classmethod
    def _join_split_name(cls, value: object) -> object:
        if not isinstance(value, Mapping):
            return value
        mapping_value = cast(Mapping[str, object], value)
        if mapping_value.get("name"):
            return mapping_value
        parts = [
            part.strip()
            for part in (mapping_value.get("firstName"), mapping_value.get("lastName"))
            if isinstance(part, str) and part.strip()
        ]
        if not parts:
            return mapping_value
        data: dict[str, object] = dict(mapping_value)
        data["name"] = " ".join(parts)
        data.pop("firstName", None)
        data.pop("lastName", None)
        return data

    _normalize_text = field_validator(
        "name",
        "email",
        "phone",
        "company",
        "title",
        "notes",
        "status",
        "last_activity_date",
        "created_at",
        mode="before",
    )(_blank_to_none)

    @field_validator("lead_source", mode="before")
    @classmethod
    def _normalize_lead_source(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @property
    def extra_fields(self) -> dict[str, object]:
        return dict(self.model_extra or {})


RawRecordInput = RawRecordPayload | Mapping[str, object]
