from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .core.constants import DEFAULT_ALLOCATION_RETRIES, DEFAULT_BUCKET_LOCK_TIMEOUT, DEFAULT_COMPANY_CODE
from .core.enums import StoreBackend
from .database.connection import DBConfig, DatabaseConnection
from .employees.allocation import AllocationCoordinator
from .employees.duplicates import DuplicateDetector
from .employees.memory_repository import InMemoryEmployeeRepository
from .employees.mysql_employee_repository import MySQLEmployeeRepository
from .employees.repository import EmployeeRepository
from .employees.service import EmployeeService
from .identifiers.sequencer import IdentifierSequencer
from .photos.storage import LocalPhotoStorage
from .proofs.generator import ProofGenerator


@dataclass(frozen=True)
class Container:
    employees_repo: EmployeeRepository
    photo_storage: LocalPhotoStorage
    proof_generator: ProofGenerator

    duplicate_detector: DuplicateDetector
    sequencer: IdentifierSequencer
    allocation_coordinator: AllocationCoordinator
    employee_service: EmployeeService

    @property
    def company_code(self) -> str:
        return self.allocation_coordinator.company_code


def build_repository(
    *, store_backend: str, db_config: Optional[dict], lock_timeout: float = DEFAULT_BUCKET_LOCK_TIMEOUT
) -> EmployeeRepository:
    backend = StoreBackend(str(store_backend).lower())
    if backend == StoreBackend.MEMORY:
        return InMemoryEmployeeRepository(lock_timeout=lock_timeout)
    if not db_config:
        raise ValueError("DB_CONFIG is required for the mysql store backend")
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
    return MySQLEmployeeRepository(conn, lock_timeout=lock_timeout)


def build_container(
    *,
    db_config: Optional[dict] = None,
    store_backend: str = StoreBackend.MYSQL.value,
    company_code: str = DEFAULT_COMPANY_CODE,
    photo_dir: str | Path = "instance/photos",
    max_retries: int = DEFAULT_ALLOCATION_RETRIES,
    lock_timeout: float = DEFAULT_BUCKET_LOCK_TIMEOUT,
    employees_repo: Optional[EmployeeRepository] = None,
) -> Container:
    if employees_repo is None:
        employees_repo = build_repository(store_backend=store_backend, db_config=db_config, lock_timeout=lock_timeout)

    photo_storage = LocalPhotoStorage(Path(photo_dir).resolve())
    proof_generator = ProofGenerator()

    duplicate_detector = DuplicateDetector(employees_repo)
    sequencer = IdentifierSequencer(employees_repo)
    allocation_coordinator = AllocationCoordinator(
        employees_repo,
        detector=duplicate_detector,
        sequencer=sequencer,
        proofs=proof_generator,
        photos=photo_storage,
        company_code=company_code,
        max_retries=max_retries,
    )
    employee_service = EmployeeService(
        employees_repo,
        coordinator=allocation_coordinator,
        detector=duplicate_detector,
        proofs=proof_generator,
        photos=photo_storage,
    )

    return Container(
        employees_repo=employees_repo,
        photo_storage=photo_storage,
        proof_generator=proof_generator,
        duplicate_detector=duplicate_detector,
        sequencer=sequencer,
        allocation_coordinator=allocation_coordinator,
        employee_service=employee_service,
    )
