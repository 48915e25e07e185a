"""Public interface for the raw record adapter."""

from __future__ import annotations

from .schema import RawRecordInput, RawRecordPayload
from .translator import load_records, translate_payload

__all__ = [
    "RawRecordInput",
    "RawRecordPayload",
    "load_records",
    "translate_payload",
]
