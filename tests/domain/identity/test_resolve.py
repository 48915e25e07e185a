from __future__ import annotations

import threading
from typing import TYPE_CHECKING

import pytest

from leadmerge.adapters.memory import (
    InMemoryContactRepository,
    InMemoryContactStore,
    InMemoryUnitOfWork,
)
from leadmerge.domain.identity import (
    AmbiguousMatchWarning,
    FingerprintLocks,
    Matcher,
    Resolution,
    ResolutionCoordinator,
    StorageError,
    ValidationError,
)
from leadmerge.domain.model import Confidence, ContactFields
from tests.helpers.contacts import make_record

if TYPE_CHECKING:
    from collections.abc import Callable

    from leadmerge.domain.identity import MatchResult
    from leadmerge.domain.model import RawRecord
    from leadmerge.domain.ports import ContactLookup


def _seed(
    store: InMemoryContactStore,
    name: str,
    *,
    email: str | None = None,
    phone: str | None = None,
    company: str | None = None,
) -> int:
    fields = ContactFields(
        name=name,
        email=email,
        phone=phone,
        company=company,
        lead_sources=("close",),
    )
    with InMemoryUnitOfWork(store) as uow:
        contact = uow.repositories.contacts.create(fields)
        uow.commit()
    assert contact.id is not None
    return contact.id


def test_resolve_links_provider_alias(
    contact_store: InMemoryContactStore,
    memory_unit_of_work: Callable[[], InMemoryUnitOfWork],
) -> None:
    contact_id = _seed(contact_store, name="Jane Doe", email="jdoe@gmail.com")
    coordinator = ResolutionCoordinator(unit_of_work_factory=memory_unit_of_work)

    resolution = coordinator.resolve(make_record("calendly", email="j.doe+calendly@gmail.com"))

    assert resolution.created is False
    assert resolution.match.confidence is Confidence.EXACT
    assert resolution.contact.id == contact_id
    assert resolution.contact.lead_sources == ("close", "calendly")
    assert resolution.warning is None
    stored = contact_store.get(contact_id)
    assert stored is not None
    assert stored.lead_source == "close,calendly"


def test_resolve_creates_new_contact(
    contact_store: InMemoryContactStore,
    memory_unit_of_work: Callable[[], InMemoryUnitOfWork],
) -> None:
    _seed(contact_store, name="Jane Doe", email="jane@example.com")
    coordinator = ResolutionCoordinator(unit_of_work_factory=memory_unit_of_work)

    resolution = coordinator.resolve(make_record("typeform", name="Someone New", email="new@x.com"))

    assert resolution.created is True
    assert resolution.reason == "new_contact_created"
    assert resolution.match.confidence is Confidence.NONE
    assert resolution.contact.lead_source == "typeform"
    assert resolution.contact.status == "lead"
    assert len(contact_store) == 2


def test_resolve_below_threshold_creates_contact(
    contact_store: InMemoryContactStore,
    memory_unit_of_work: Callable[[], InMemoryUnitOfWork],
) -> None:
    _seed(contact_store, name="Alice Brown", company="Acme")
    coordinator = ResolutionCoordinator(unit_of_work_factory=memory_unit_of_work)
    record = make_record(name="Alice Brown", company="Acme")

    resolution = coordinator.resolve(record, Confidence.HIGH)

    assert resolution.created is True
    assert resolution.match.confidence is Confidence.MEDIUM
    assert len(contact_store) == 2


def test_resolve_attaches_warning_to_ambiguous_match(
    contact_store: InMemoryContactStore,
    memory_unit_of_work: Callable[[], InMemoryUnitOfWork],
    caplog: pytest.LogCaptureFixture,
) -> None:
    contact_id = _seed(contact_store, name="Alice Brown", company="Acme")
    coordinator = ResolutionCoordinator(unit_of_work_factory=memory_unit_of_work)

    with caplog.at_level("WARNING"):
        resolution = coordinator.resolve(
            make_record(name="Alice Brown", company="Acme"),
            Confidence.LOW,
        )

    assert resolution.created is False
    assert isinstance(resolution.warning, AmbiguousMatchWarning)
    assert resolution.warning.contact_id == contact_id
    assert resolution.warning.confidence_label == "medium"
    assert "name_company" in caplog.text


def test_resolve_without_update_leaves_contact_untouched(
    contact_store: InMemoryContactStore,
    memory_unit_of_work: Callable[[], InMemoryUnitOfWork],
) -> None:
    contact_id = _seed(contact_store, name="Jane Doe", email="jane@example.com")
    coordinator = ResolutionCoordinator(unit_of_work_factory=memory_unit_of_work)

    resolution = coordinator.resolve(
        make_record("calendly", email="jane@example.com", title="CTO"),
        update_if_found=False,
    )

    stored = contact_store.get(contact_id)
    assert resolution.created is False
    assert stored is not None
    assert stored.lead_sources == ("close",)
    assert stored.title is None


def test_resolve_is_idempotent(
    contact_store: InMemoryContactStore,
    memory_unit_of_work: Callable[[], InMemoryUnitOfWork],
) -> None:
    coordinator = ResolutionCoordinator(unit_of_work_factory=memory_unit_of_work)
    record = make_record("typeform", name="Jane Doe", email="jane@example.com", notes="hello")

    first = coordinator.resolve(record)
    second = coordinator.resolve(record)

    assert first.created is True
    assert second.created is False
    assert second.contact.id == first.contact.id
    assert second.contact.notes == "hello"
    assert second.contact.lead_sources == ("typeform",)
    assert len(contact_store) == 1


def test_resolve_rejects_record_without_identity(
    contact_store: InMemoryContactStore,
    memory_unit_of_work: Callable[[], InMemoryUnitOfWork],
) -> None:
    coordinator = ResolutionCoordinator(unit_of_work_factory=memory_unit_of_work)

    with pytest.raises(ValidationError):
        coordinator.resolve(make_record(phone="5551234567", company="Acme"))

    assert len(contact_store) == 0


def test_resolve_phone_only_record_links_to_existing_contact(
    contact_store: InMemoryContactStore,
    memory_unit_of_work: Callable[[], InMemoryUnitOfWork],
) -> None:
    contact_id = _seed(contact_store, name="Jane Doe", phone="5551234567")
    coordinator = ResolutionCoordinator(unit_of_work_factory=memory_unit_of_work)

    resolution = coordinator.resolve(make_record(phone="555-123-4567"))

    assert resolution.contact.id == contact_id
    assert resolution.match.confidence is Confidence.MEDIUM


class _FailingCommitUnitOfWork(InMemoryUnitOfWork):
    def commit(self) -> None:
        raise StorageError("disk full")


def test_storage_failure_leaves_store_unchanged(contact_store: InMemoryContactStore) -> None:
    coordinator = ResolutionCoordinator(
        unit_of_work_factory=lambda: _FailingCommitUnitOfWork(contact_store),
    )

    with pytest.raises(StorageError):
        coordinator.resolve(make_record(name="Jane Doe", email="jane@example.com"))

    assert len(contact_store) == 0
    assert coordinator.locks.active() == 0


def test_vanished_contact_raises_storage_error(
    contact_store: InMemoryContactStore,
    memory_unit_of_work: Callable[[], InMemoryUnitOfWork],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    _seed(contact_store, name="Jane Doe", email="jane@example.com")
    coordinator = ResolutionCoordinator(unit_of_work_factory=memory_unit_of_work)

    def vanish(_self: InMemoryContactRepository, *_args: object) -> None:
        return None

    monkeypatch.setattr(InMemoryContactRepository, "update", vanish)

    with pytest.raises(StorageError):
        coordinator.resolve(make_record(email="jane@example.com"))


def test_find_best_match_does_not_write(
    contact_store: InMemoryContactStore,
    memory_unit_of_work: Callable[[], InMemoryUnitOfWork],
) -> None:
    coordinator = ResolutionCoordinator(unit_of_work_factory=memory_unit_of_work)

    result = coordinator.find_best_match(make_record(name="Jane Doe", email="jane@example.com"))

    assert result.confidence is Confidence.NONE
    assert len(contact_store) == 0


def test_concurrent_resolution_creates_one_contact(
    contact_store: InMemoryContactStore,
    memory_unit_of_work: Callable[[], InMemoryUnitOfWork],
) -> None:
    coordinator = ResolutionCoordinator(unit_of_work_factory=memory_unit_of_work)
    barrier = threading.Barrier(2)
    results: list[Resolution] = []
    errors: list[BaseException] = []

    def worker(source: str) -> None:
        barrier.wait()
        try:
            results.append(
                coordinator.resolve(make_record(source, name="New Person", email="new@x.com"))
            )
        except BaseException as exc:  # noqa: BLE001
            errors.append(exc)

    threads = [threading.Thread(target=worker, args=(source,)) for source in ("close", "calendly")]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)

    assert errors == []
    assert len(contact_store) == 1
    assert sorted(result.created for result in results) == [False, True]
    assert {result.contact.id for result in results} == {1}
    stored = contact_store.get(1)
    assert stored is not None
    assert set(stored.lead_sources) == {"close", "calendly"}


@pytest.mark.parametrize(
    ("first", "second"),
    [
        (
            {"name": "Alice Brown", "company": "Acme"},
            {"name": "Alice Brown", "company": "Acme", "email": "alice@acme.com"},
        ),
        (
            {"name": "Alice Brown", "company": "Acme", "email": "alice@acme.com"},
            {"name": "Alice Brown", "company": "Acme", "email": "abrown@gmail.com"},
        ),
    ],
    ids=["keyless-and-email", "different-emails-same-company"],
)
def test_concurrent_resolution_of_company_match_creates_one_contact(
    contact_store: InMemoryContactStore,
    memory_unit_of_work: Callable[[], InMemoryUnitOfWork],
    first: dict[str, str],
    second: dict[str, str],
) -> None:
    after_match = threading.Barrier(2)

    class _PausingMatcher(Matcher):
        # Both threads would pause here together if their decisions overlapped.
        def find_best_match(self, record: RawRecord, contacts: ContactLookup) -> MatchResult:
            result = Matcher.find_best_match(self, record, contacts)
            try:
                after_match.wait(timeout=0.5)
            except threading.BrokenBarrierError:
                pass
            return result

    coordinator = ResolutionCoordinator(
        unit_of_work_factory=memory_unit_of_work,
        matcher=_PausingMatcher(),
    )
    results: list[Resolution] = []
    errors: list[BaseException] = []

    def worker(source: str, fields: dict[str, str]) -> None:
        try:
            results.append(coordinator.resolve(make_record(source, **fields)))
        except BaseException as exc:  # noqa: BLE001
            errors.append(exc)

    threads = [
        threading.Thread(target=worker, args=("close", first)),
        threading.Thread(target=worker, args=("calendly", second)),
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)

    assert errors == []
    assert len(contact_store) == 1
    assert sorted(result.created for result in results) == [False, True]
    stored = contact_store.get(1)
    assert stored is not None
    assert set(stored.lead_sources) == {"close", "calendly"}


def test_name_only_threshold_resolves_alone(
    contact_store: InMemoryContactStore,
    memory_unit_of_work: Callable[[], InMemoryUnitOfWork],
) -> None:
    locks = FingerprintLocks()
    coordinator = ResolutionCoordinator(unit_of_work_factory=memory_unit_of_work, locks=locks)
    entered = threading.Event()
    release = threading.Event()
    outcome: list[Resolution] = []

    def keyed_resolution() -> None:
        with locks.hold(["email:other@x.com"]):
            entered.set()
            release.wait(timeout=5)

    holder = threading.Thread(target=keyed_resolution)
    holder.start()
    assert entered.wait(timeout=5)

    waiter = threading.Thread(
        target=lambda: outcome.append(
            coordinator.resolve(make_record(name="Alice Brown", email="a@x.com"), Confidence.LOW)
        )
    )
    waiter.start()
    waiter.join(timeout=0.2)
    assert outcome == []

    release.set()
    holder.join(timeout=5)
    waiter.join(timeout=5)
    assert [resolution.created for resolution in outcome] == [True]
