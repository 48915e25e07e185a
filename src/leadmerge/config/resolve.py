"""Batch resolution defaults."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_int

DEFAULT_BATCH_SIZE = 200


@dataclass(frozen=True, slots=True)
class ResolveConfig:
    batch_size: int = DEFAULT_BATCH_SIZE


def get_resolve_config() -> ResolveConfig:
    return ResolveConfig(
        batch_size=optional_int("LEADMERGE_BATCH_SIZE", DEFAULT_BATCH_SIZE, minimum=1),
    )
