"""Transaction boundary the resolution engine runs each decision in."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from leadmerge.domain.ports.persistence import ContactRepository


@dataclass(slots=True)
class ContactRepositories:
    contacts: ContactRepository


@runtime_checkable
class ContactUnitOfWork(Protocol):
    """One read-decide-write transaction over the canonical contacts.

    Reads made through ``repositories`` see this unit's own pending writes.
    Nothing is visible to other units before ``commit``, and leaving the
    context without committing discards every write. ``commit`` raises
    ``StorageError`` when the store cannot apply the writes, including when a
    contact read here was changed by another unit in the meantime.
    """

    @property
    def repositories(self) -> ContactRepositories: ...

    def __enter__(self) -> ContactUnitOfWork: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...
