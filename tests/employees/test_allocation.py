from __future__ import annotations

import pytest

from src.employee_registry.employee_registry.core.exceptions import (
    DuplicateError,
    FatalAllocationError,
    PhotoStorageError,
    SequenceConflictError,
    SequenceExhaustedError,
    StoreUnavailableError,
)
from src.employee_registry.employee_registry.employees.memory_repository import InMemoryEmployeeRepository
from src.employee_registry.employee_registry.employees.model import NewEmployee
from src.employee_registry.employee_registry.photos.storage import PhotoUpload, StoredPhoto

BASE_URL = "https://registry.example.com"


def ann_lee(**overrides) -> NewEmployee:
    data = {"first_name": "Ann", "last_name": "Lee", "department": "Engineering", "email": "ann@x.io"}
    data.update(overrides)
    return NewEmployee.from_input(data)


class SneakyWriterRepository(InMemoryEmployeeRepository):
    """Another writer takes the computed identifier right before our insert, `times` times."""

    def __init__(self, *, times: int, make_record):
        super().__init__(lock_timeout=5)
        self.times = times
        self.make_record = make_record
        self.attempts: list[str] = []

    def insert_with_unique_identifier(self, record):
        self.attempts.append(record.identifier)
        if self.times > 0:
            self.times -= 1
            super().insert_with_unique_identifier(self.make_record(record.identifier, first_name="Intruder"))
        return super().insert_with_unique_identifier(record)


class AlwaysConflictingRepository(InMemoryEmployeeRepository):
    def __init__(self):
        super().__init__(lock_timeout=5)
        self.attempts = 0

    def insert_with_unique_identifier(self, record):
        self.attempts += 1
        return False


class BrokenLookupRepository(InMemoryEmployeeRepository):
    def find_latest_in_bucket(self, bucket_prefix):
        raise StoreUnavailableError("connection reset")


class UnlinkableRepository(InMemoryEmployeeRepository):
    def update(self, record):
        raise StoreUnavailableError("write timed out")


class FakePhotos:
    def __init__(self, *, fail: bool = False):
        self.fail = fail
        self.saved: list[PhotoUpload] = []
        self.deleted: list[str] = []

    def save(self, upload):
        if self.fail:
            raise PhotoStorageError("disk full")
        self.saved.append(upload)
        return StoredPhoto(url=f"/photos/p{len(self.saved)}.png", ref=f"p{len(self.saved)}.png")

    def delete(self, ref):
        self.deleted.append(ref)


def test_ann_lee_gets_first_engineering_identifier_of_2025(make_coordinator, repo, fake_proofs):
    result = make_coordinator().allocate(ann_lee(), base_url=BASE_URL)

    assert result.identifier == "ART-25-ENG-000001-4"
    assert result.verify_url == f"{BASE_URL}/verify/ART-25-ENG-000001-4"
    assert result.is_partial is False
    assert repo.get_by_identifier("ART-25-ENG-000001-4").email == "ann@x.io"
    assert fake_proofs.calls == [("ART-25-ENG-000001-4", result.verify_url)]


def test_next_serial_follows_latest_in_bucket(make_coordinator, repo, make_record):
    repo.insert_with_unique_identifier(make_record("ART-25-ENG-000041-8"))

    result = make_coordinator().allocate(ann_lee(), base_url=BASE_URL)

    assert result.identifier == "ART-25-ENG-000042-0"


def test_buckets_are_counted_separately(make_coordinator):
    coordinator = make_coordinator()
    eng = coordinator.allocate(ann_lee(), base_url=BASE_URL)
    ops = coordinator.allocate(ann_lee(department="ops", email="other@x.io"), base_url=BASE_URL)
    gen = coordinator.allocate(ann_lee(department="", email="third@x.io"), base_url=BASE_URL)

    assert eng.identifier.startswith("ART-25-ENG-000001-")
    assert ops.identifier.startswith("ART-25-OPS-000001-")
    assert gen.identifier.startswith("ART-25-GEN-000001-")


def test_company_code_is_configurable(make_coordinator):
    result = make_coordinator(company_code="acme").allocate(ann_lee(), base_url=BASE_URL)

    assert result.identifier.startswith("ACME-25-ENG-000001-")


def test_invalid_company_code_is_rejected(make_coordinator):
    with pytest.raises(ValueError):
        make_coordinator(company_code="AC-ME")


def test_insert_conflict_is_retried_with_fresh_serial(make_coordinator, make_record):
    store = SneakyWriterRepository(times=1, make_record=make_record)

    result = make_coordinator(store).allocate(ann_lee(), base_url=BASE_URL)

    assert store.attempts == ["ART-25-ENG-000001-4", "ART-25-ENG-000002-5"]
    assert result.identifier == "ART-25-ENG-000002-5"


def test_retries_are_bounded_and_store_is_untouched(make_coordinator):
    store = AlwaysConflictingRepository()

    with pytest.raises(FatalAllocationError) as info:
        make_coordinator(store, max_retries=3).allocate(ann_lee(), base_url=BASE_URL)

    assert store.attempts == 3
    assert info.value.bucket == "ART-25-ENG"
    assert info.value.serial == 1
    assert isinstance(info.value.__cause__, SequenceConflictError)
    assert store.search(q="", limit=10, offset=0) == []


def test_max_retries_must_be_positive(make_coordinator):
    with pytest.raises(ValueError):
        make_coordinator(max_retries=0)


def test_exhausted_bucket_fails_without_wraparound(make_coordinator, repo, make_record):
    repo.insert_with_unique_identifier(make_record("ART-25-ENG-999999-3"))

    with pytest.raises(SequenceExhaustedError):
        make_coordinator().allocate(ann_lee(), base_url=BASE_URL)

    assert len(repo.search(q="", limit=10, offset=0)) == 1


def test_lookup_failure_is_not_treated_as_empty_bucket(make_coordinator):
    store = BrokenLookupRepository(lock_timeout=5)

    with pytest.raises(StoreUnavailableError):
        make_coordinator(store).allocate(ann_lee(), base_url=BASE_URL)

    assert store.get_by_identifier("ART-25-ENG-000001-4") is None


def test_duplicate_leaves_store_unchanged(make_coordinator, repo):
    coordinator = make_coordinator()
    coordinator.allocate(ann_lee(), base_url=BASE_URL)

    with pytest.raises(DuplicateError) as info:
        coordinator.allocate(ann_lee(first_name="Someone", email="ANN@X.IO"), base_url=BASE_URL)

    assert info.value.field.value == "email"
    assert len(repo.search(q="", limit=10, offset=0)) == 1
    assert repo.highest_issued_serial("ART-25-ENG-") == 1


def test_proof_failure_is_partial_success(make_coordinator, repo, failing_proofs):
    result = make_coordinator(proofs=failing_proofs).allocate(ann_lee(), base_url=BASE_URL)

    assert result.is_partial is True
    assert result.proofs is None
    assert "renderer offline" in result.proof_error
    assert repo.get_by_identifier(result.identifier) is not None


def test_photo_is_linked_after_insert(make_coordinator, repo):
    photos = FakePhotos()
    upload = PhotoUpload(data=b"\x89PNG...", filename="ann.png", content_type="image/png")

    result = make_coordinator(photos=photos).allocate(ann_lee(), base_url=BASE_URL, photo=upload)

    assert result.photo_error is None
    assert result.record.photo_url == "/photos/p1.png"
    assert repo.get_by_identifier(result.identifier).photo_ref == "p1.png"


def test_photo_failure_is_partial_success(make_coordinator, repo):
    upload = PhotoUpload(data=b"\x89PNG...", filename="ann.png", content_type="image/png")

    result = make_coordinator(photos=FakePhotos(fail=True)).allocate(ann_lee(), base_url=BASE_URL, photo=upload)

    assert result.is_partial is True
    assert result.photo_error == "disk full"
    assert result.proofs is not None
    assert repo.get_by_identifier(result.identifier).photo_url is None


def test_external_photo_url_is_stored_with_the_record(make_coordinator, repo):
    result = make_coordinator().allocate(ann_lee(), base_url=BASE_URL, photo_url="https://cdn.example.com/ann.jpg")

    assert repo.get_by_identifier(result.identifier).photo_url == "https://cdn.example.com/ann.jpg"


def test_photo_that_cannot_be_linked_is_removed(make_coordinator):
    store = UnlinkableRepository(lock_timeout=5)
    photos = FakePhotos()
    upload = PhotoUpload(data=b"\x89PNG...", filename="ann.png", content_type="image/png")

    result = make_coordinator(store, photos=photos).allocate(ann_lee(), base_url=BASE_URL, photo=upload)

    assert result.photo_error == "write timed out"
    assert result.record.photo_ref is None
    assert photos.deleted == ["p1.png"]
    assert store.get_by_identifier(result.identifier).photo_url is None
