from __future__ import annotations

from datetime import datetime

import pytest

from src.employee_registry.employee_registry.core.exceptions import ProofGenerationError
from src.employee_registry.employee_registry.employees.allocation import AllocationCoordinator
from src.employee_registry.employee_registry.employees.duplicates import DuplicateDetector
from src.employee_registry.employee_registry.employees.memory_repository import InMemoryEmployeeRepository
from src.employee_registry.employee_registry.employees.model import EmployeeRecord
from src.employee_registry.employee_registry.identifiers.sequencer import IdentifierSequencer
from src.employee_registry.employee_registry.proofs.generator import ProofBundle


class FakeProofs:
    """Stands in for the QR/barcode renderer; records what it was asked to encode."""

    def __init__(self, *, fail: bool = False):
        self.fail = fail
        self.calls: list[tuple[str, str]] = []

    def qr_png(self, text: str) -> bytes:
        if self.fail:
            raise ProofGenerationError("renderer offline")
        return b"QR:" + text.encode()

    def barcode_png(self, text: str) -> bytes:
        if self.fail:
            raise ProofGenerationError("renderer offline")
        return b"BAR:" + text.encode()

    def generate(self, identifier: str, verify_url: str) -> ProofBundle:
        self.calls.append((identifier, verify_url))
        return ProofBundle(qr_png=self.qr_png(verify_url), barcode_png=self.barcode_png(identifier))


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2025, 3, 14, 9, 30, 0)


@pytest.fixture
def repo() -> InMemoryEmployeeRepository:
    return InMemoryEmployeeRepository(lock_timeout=5)


@pytest.fixture
def fake_proofs() -> FakeProofs:
    return FakeProofs()


@pytest.fixture
def make_coordinator(repo, fixed_now, fake_proofs):
    def _make(store=None, *, proofs=None, photos=None, max_retries=5, company_code="ART", clock=None):
        store = store if store is not None else repo
        return AllocationCoordinator(
            store,
            detector=DuplicateDetector(store),
            sequencer=IdentifierSequencer(store),
            proofs=proofs if proofs is not None else fake_proofs,
            photos=photos,
            company_code=company_code,
            max_retries=max_retries,
            clock=clock or (lambda: fixed_now),
        )

    return _make


@pytest.fixture
def make_record(fixed_now):
    def _make(identifier: str, *, created_at: datetime = None, **fields) -> EmployeeRecord:
        fields.setdefault("first_name", "Test")
        fields.setdefault("last_name", "Person")
        return EmployeeRecord(identifier=identifier, created_at=created_at or fixed_now, **fields)

    return _make


@pytest.fixture
def failing_proofs() -> FakeProofs:
    return FakeProofs(fail=True)
