"""Typed readers for ``LEADMERGE_*`` environment variables.

Unset and blank variables fall back to the default; anything else must parse
or a ``ConfigurationError`` naming the variable is raised.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from .errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence


def _raw(name: str) -> str | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def optional_int(name: str, default: int, *, minimum: int | None = None) -> int:
    raw = _raw(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(name, f"must be an integer, got {raw!r}") from exc
    if minimum is not None and value < minimum:
        raise ConfigurationError(name, f"must be >= {minimum}, got {value}")
    return value


def optional_list(name: str, default: Sequence[str]) -> tuple[str, ...]:
    """Comma separated items, lowercased; blank items are dropped."""

    raw = _raw(name)
    if raw is None:
        return tuple(default)
    items = tuple(item.strip().lower() for item in raw.split(",") if item.strip())
    if not items:
        raise ConfigurationError(name, "must list at least one value")
    return items


def optional_choice[T](name: str, default: T, parse: Callable[[str], T]) -> T:
    """Parse the variable with ``parse``; its ``ValueError`` becomes a config error."""

    raw = _raw(name)
    if raw is None:
        return default
    try:
        return parse(raw)
    except ValueError as exc:
        raise ConfigurationError(name, str(exc)) from exc
