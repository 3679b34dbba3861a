from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Optional, Protocol, Sequence

from .model import EmployeeRecord, NewEmployee


class EmployeeRepository(Protocol):
    """Record store interface for employees.

    Note (DIP): services and the allocator depend on this interface, never on a
    concrete database. Infrastructure failures surface as StoreUnavailableError.
    """

    def find_latest_in_bucket(self, bucket_prefix: str) -> Optional[EmployeeRecord]:
        """Most recently created record whose identifier belongs to the bucket."""
        raise NotImplementedError

    def highest_issued_serial(self, bucket_prefix: str) -> int:
        """Largest serial ever issued in the bucket, including deleted records (0 if none)."""
        raise NotImplementedError

    def find_conflicting(
        self, candidate: NewEmployee, *, exclude_identifier: Optional[str] = None
    ) -> Optional[EmployeeRecord]:
        raise NotImplementedError

    def insert_with_unique_identifier(self, record: EmployeeRecord) -> bool:
        """Insert the record; False when its identifier is already taken."""
        raise NotImplementedError

    def allocation_scope(self, bucket_prefix: str) -> AbstractContextManager:
        """Serialize writers sharing `bucket_prefix` (or DUPLICATE_CHECK_SCOPE) for the block."""
        raise NotImplementedError

    def get_by_identifier(self, identifier: str) -> Optional[EmployeeRecord]:
        raise NotImplementedError

    def search(self, *, q: str, limit: int, offset: int) -> Sequence[EmployeeRecord]:
        raise NotImplementedError

    def update(self, record: EmployeeRecord) -> bool:
        raise NotImplementedError

    def delete_by_identifier(self, identifier: str) -> bool:
        raise NotImplementedError
