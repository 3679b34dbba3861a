from __future__ import annotations

from datetime import timedelta

import pytest

from src.employee_registry.employee_registry.core.exceptions import StoreUnavailableError
from src.employee_registry.employee_registry.employees.memory_repository import InMemoryEmployeeRepository
from src.employee_registry.employee_registry.identifiers.codes import checksum_digit


def _ident(body: str) -> str:
    return f"{body}-{checksum_digit(body)}"


def test_insert_rejects_taken_identifier(repo, make_record):
    assert repo.insert_with_unique_identifier(make_record("ART-25-ENG-000001-4")) is True
    assert repo.insert_with_unique_identifier(make_record("ART-25-ENG-000001-4", first_name="Other")) is False
    assert repo.get_by_identifier("ART-25-ENG-000001-4").first_name == "Test"


def test_latest_in_bucket_orders_by_creation(repo, make_record, fixed_now):
    repo.insert_with_unique_identifier(make_record("ART-25-ENG-000002-5", created_at=fixed_now))
    repo.insert_with_unique_identifier(make_record("ART-25-ENG-000001-4", created_at=fixed_now - timedelta(days=1)))
    repo.insert_with_unique_identifier(make_record("ART-25-OPS-000009-0", created_at=fixed_now + timedelta(days=1)))

    assert repo.find_latest_in_bucket("ART-25-ENG-").identifier == "ART-25-ENG-000002-5"
    assert repo.find_latest_in_bucket("ART-25-HRX-") is None


def test_high_water_survives_deletion(repo, make_record):
    repo.insert_with_unique_identifier(make_record("ART-25-ENG-000001-4"))
    repo.insert_with_unique_identifier(make_record("ART-25-ENG-000002-5"))
    assert repo.delete_by_identifier("ART-25-ENG-000002-5") is True

    assert repo.highest_issued_serial("ART-25-ENG-") == 2
    assert repo.delete_by_identifier("ART-25-ENG-000002-5") is False


def test_search_filters_and_pages(repo, make_record, fixed_now):
    for i, name in enumerate(["Ann", "Bob", "Anna"], start=1):
        repo.insert_with_unique_identifier(
            make_record(_ident(f"ART-25-ENG-{i:06d}"), first_name=name, created_at=fixed_now + timedelta(minutes=i))
        )

    assert [r.first_name for r in repo.search(q="ann", limit=10, offset=0)] == ["Anna", "Ann"]
    assert [r.first_name for r in repo.search(q="", limit=1, offset=1)] == ["Bob"]


def test_allocation_scope_times_out_when_bucket_is_held():
    repo = InMemoryEmployeeRepository(lock_timeout=0.05)

    with repo.allocation_scope("ART-25-ENG-"):
        with pytest.raises(StoreUnavailableError):
            with repo.allocation_scope("ART-25-ENG-"):
                pass
        # Other buckets are independent.
        with repo.allocation_scope("ART-25-OPS-"):
            pass
