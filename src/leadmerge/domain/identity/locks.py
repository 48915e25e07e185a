"""Per-identity mutual exclusion for the create-or-update decision.

Every resolution passes a process-wide gate before taking its fingerprint
locks. Keyed resolutions share the gate; a record that has no key to lock on
holds it exclusively, as does any work that may touch every contact (a
name-only decision, consolidation).
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from leadmerge.domain.model import RawRecord

    from .normalize import Normalizer

SERIAL_FINGERPRINT: Final[str] = "serial"


def identity_fingerprints(record: RawRecord, normalizer: Normalizer) -> tuple[str, ...]:
    """Keys that serialize concurrent resolution of the same identity.

    A record with an email or a usable phone holds those keys plus its company
    key, since the name+company tier can link it to a contact that shares
    neither. Records with no email and no usable phone return
    ``SERIAL_FINGERPRINT``.
    """

    fingerprints: list[str] = []
    email = normalizer.email(record.email)
    if email:
        fingerprints.append(f"email:{email}")
    phone = normalizer.usable_phone(record.phone)
    if phone:
        fingerprints.append(f"phone:{phone}")
    if not fingerprints:
        return (SERIAL_FINGERPRINT,)
    company = normalizer.company(record.company)
    if company:
        fingerprints.append(f"company:{company}")
    return tuple(fingerprints)


@dataclass(slots=True)
class _Gate:
    """Shared/exclusive lock; waiting exclusive holders block new shared ones."""

    _condition: threading.Condition = field(default_factory=threading.Condition)
    _shared: int = 0
    _exclusive: bool = False
    _exclusive_waiting: int = 0

    def acquire_shared(self) -> None:
        with self._condition:
            while self._exclusive or self._exclusive_waiting:
                self._condition.wait()
            self._shared += 1

    def release_shared(self) -> None:
        with self._condition:
            self._shared -= 1
            if self._shared == 0:
                self._condition.notify_all()

    def acquire_exclusive(self) -> None:
        with self._condition:
            self._exclusive_waiting += 1
            try:
                while self._exclusive or self._shared:
                    self._condition.wait()
            finally:
                self._exclusive_waiting -= 1
            self._exclusive = True

    def release_exclusive(self) -> None:
        with self._condition:
            self._exclusive = False
            self._condition.notify_all()


@dataclass(slots=True)
class _Slot:
    lock: threading.Lock = field(default_factory=threading.Lock)
    holders: int = 0


@dataclass(slots=True)
class FingerprintLocks:
    """A lock per fingerprint, created on demand and dropped when unused."""

    _gate: _Gate = field(default_factory=_Gate)
    _guard: threading.Lock = field(default_factory=threading.Lock)
    _slots: dict[str, _Slot] = field(default_factory=dict)

    @contextmanager
    def hold(self, fingerprints: Iterable[str], *, exclusive: bool = False) -> Iterator[None]:
        """Hold every lock in ``fingerprints``, acquired in sorted order.

        ``SERIAL_FINGERPRINT`` (or ``exclusive=True``) waits for every other
        holder to leave and keeps them out until released.
        """

        keys = sorted(set(fingerprints))
        if exclusive or SERIAL_FINGERPRINT in keys:
            with self.hold_exclusive():
                yield
            return

        self._gate.acquire_shared()
        acquired: list[tuple[str, _Slot]] = []
        try:
            for fingerprint in keys:
                slot = self._checkout(fingerprint)
                try:
                    slot.lock.acquire()
                except BaseException:
                    self._checkin(fingerprint)
                    raise
                acquired.append((fingerprint, slot))
            yield
        finally:
            for fingerprint, slot in reversed(acquired):
                slot.lock.release()
                self._checkin(fingerprint)
            self._gate.release_shared()

    @contextmanager
    def hold_exclusive(self) -> Iterator[None]:
        self._gate.acquire_exclusive()
        try:
            yield
        finally:
            self._gate.release_exclusive()

    def active(self) -> int:
        """Number of fingerprints currently held or waited on."""

        with self._guard:
            return len(self._slots)

    def _checkout(self, fingerprint: str) -> _Slot:
        with self._guard:
            slot = self._slots.get(fingerprint)
            if slot is None:
                slot = self._slots[fingerprint] = _Slot()
            slot.holders += 1
            return slot

    def _checkin(self, fingerprint: str) -> None:
        with self._guard:
            slot = self._slots[fingerprint]
            slot.holders -= 1
            if slot.holders == 0:
                del self._slots[fingerprint]
