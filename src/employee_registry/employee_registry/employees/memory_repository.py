from __future__ import annotations

import itertools
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Optional, Sequence, Tuple

from ..core.constants import DEFAULT_BUCKET_LOCK_TIMEOUT
from ..core.exceptions import StoreUnavailableError
from ..identifiers.model import EmployeeIdentifier, serial_of
from .duplicates import match_field
from .model import EmployeeRecord, NewEmployee
from .repository import EmployeeRepository


class InMemoryEmployeeRepository(EmployeeRepository):
    """Process-local store with the same contract as the MySQL one.

    `identifier` is unique like the database column; each bucket has its own
    lock for allocations and a high-water mark that deletions never lower.
    """

    def __init__(self, *, lock_timeout: float = DEFAULT_BUCKET_LOCK_TIMEOUT):
        self._lock = threading.RLock()
        self._lock_timeout = lock_timeout
        self._records: Dict[str, Tuple[int, EmployeeRecord]] = {}
        self._seq = itertools.count(1)
        self._high_water: Dict[str, int] = {}
        self._bucket_locks: Dict[str, threading.Lock] = {}

    def _newest_first(self) -> list[EmployeeRecord]:
        with self._lock:
            rows = list(self._records.values())
        rows.sort(key=lambda r: (r[1].created_at, r[0]), reverse=True)
        return [rec for _, rec in rows]

    def find_latest_in_bucket(self, bucket_prefix: str) -> Optional[EmployeeRecord]:
        for rec in self._newest_first():
            if rec.identifier.startswith(bucket_prefix):
                return rec
        return None

    def highest_issued_serial(self, bucket_prefix: str) -> int:
        with self._lock:
            return self._high_water.get(bucket_prefix, 0)

    def find_conflicting(
        self, candidate: NewEmployee, *, exclude_identifier: Optional[str] = None
    ) -> Optional[EmployeeRecord]:
        for rec in self._newest_first():
            if rec.identifier == exclude_identifier:
                continue
            if match_field(candidate, rec) is not None:
                return rec
        return None

    def insert_with_unique_identifier(self, record: EmployeeRecord) -> bool:
        prefix = EmployeeIdentifier.parse(record.identifier).bucket.prefix
        with self._lock:
            if record.identifier in self._records:
                return False
            self._records[record.identifier] = (next(self._seq), record)
            serial = serial_of(record.identifier)
            self._high_water[prefix] = max(self._high_water.get(prefix, 0), serial)
            return True

    @contextmanager
    def allocation_scope(self, bucket_prefix: str) -> Iterator[None]:
        with self._lock:
            bucket_lock = self._bucket_locks.setdefault(bucket_prefix, threading.Lock())
        if not bucket_lock.acquire(timeout=self._lock_timeout):
            raise StoreUnavailableError(f"Timed out waiting for allocation lock of bucket {bucket_prefix}")
        try:
            yield
        finally:
            bucket_lock.release()

    def get_by_identifier(self, identifier: str) -> Optional[EmployeeRecord]:
        with self._lock:
            row = self._records.get(identifier)
        return row[1] if row else None

    def search(self, *, q: str, limit: int, offset: int) -> Sequence[EmployeeRecord]:
        needle = (q or "").strip().lower()
        rows = self._newest_first()
        if needle:
            rows = [
                r
                for r in rows
                if any(needle in (v or "").lower() for v in (r.identifier, r.first_name, r.last_name, r.email, r.contact))
            ]
        return rows[offset : offset + limit]

    def update(self, record: EmployeeRecord) -> bool:
        with self._lock:
            row = self._records.get(record.identifier)
            if not row:
                return False
            self._records[record.identifier] = (row[0], record)
            return True

    def delete_by_identifier(self, identifier: str) -> bool:
        with self._lock:
            return self._records.pop(identifier, None) is not None
