"""Normalized lookup keys for canonical contacts.

Tiers 1-3 of the matcher are index lookups keyed by the values produced here,
so storage adapters must derive their keys with the same ``Normalizer`` the
matcher uses.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from leadmerge.domain.model import KeyKind

if TYPE_CHECKING:
    from collections.abc import Iterable

    from leadmerge.domain.model import CanonicalContact, ContactFields

    from .normalize import Normalizer


type ContactKeys = dict[KeyKind, str]


def contact_keys(
    contact: CanonicalContact | ContactFields,
    normalizer: Normalizer,
) -> ContactKeys:
    """Index keys of one contact; unusable values produce no key."""

    keys: ContactKeys = {}
    email = normalizer.email(contact.email)
    if email:
        keys[KeyKind.EMAIL] = email
    phone = normalizer.usable_phone(contact.phone)
    if phone:
        keys[KeyKind.PHONE] = phone
    company = normalizer.company(contact.company)
    if company:
        keys[KeyKind.COMPANY] = company
    return keys


@dataclass(slots=True)
class ContactIndex:
    """In-memory hash indexes: key kind -> normalized key -> contact ids."""

    _ids_by_key: dict[KeyKind, defaultdict[str, set[int]]] = field(
        default_factory=lambda: {kind: defaultdict(set) for kind in KeyKind}
    )
    _keys_by_id: dict[int, ContactKeys] = field(default_factory=dict)

    def put(self, contact_id: int, keys: ContactKeys) -> None:
        """Index ``contact_id`` under ``keys``, replacing any previous keys."""

        self.discard(contact_id)
        for kind, key in keys.items():
            self._ids_by_key[kind][key].add(contact_id)
        self._keys_by_id[contact_id] = dict(keys)

    def discard(self, contact_id: int) -> None:
        previous = self._keys_by_id.pop(contact_id, None)
        if previous is None:
            return
        for kind, key in previous.items():
            bucket = self._ids_by_key[kind].get(key)
            if bucket is None:
                continue
            bucket.discard(contact_id)
            if not bucket:
                del self._ids_by_key[kind][key]

    def lookup(self, kind: KeyKind, key: str) -> frozenset[int]:
        if not key:
            return frozenset()
        return frozenset(self._ids_by_key[kind].get(key, ()))

    def keys_for(self, contact_id: int) -> ContactKeys:
        return dict(self._keys_by_id.get(contact_id, {}))

    def rebuild(self, entries: Iterable[tuple[int, ContactKeys]]) -> None:
        for kind in KeyKind:
            self._ids_by_key[kind].clear()
        self._keys_by_id.clear()
        for contact_id, keys in entries:
            self.put(contact_id, keys)
