"""Duplicate detection run before an identifier is allocated.

A stored record conflicts with an incoming one when any rule holds:

- email equal, ignoring case
- contact equal
- first name and last name equal ignoring case, and date of birth equal

A rule only applies when the incoming record has every field it reads, so an
empty email never matches another empty email.
"""

from __future__ import annotations

from typing import Optional, Protocol

from ..core.enums import DuplicateField
from ..core.exceptions import DuplicateError
from .model import EmployeeRecord, NewEmployee


def _same_ci(a: str, b: str) -> bool:
    return (a or "").strip().lower() == (b or "").strip().lower()


def match_field(candidate: NewEmployee, record: EmployeeRecord) -> Optional[DuplicateField]:
    if candidate.email and _same_ci(candidate.email, record.email):
        return DuplicateField.EMAIL
    if candidate.contact and candidate.contact == (record.contact or "").strip():
        return DuplicateField.CONTACT
    if (
        candidate.first_name
        and candidate.last_name
        and candidate.date_of_birth
        and _same_ci(candidate.first_name, record.first_name)
        and _same_ci(candidate.last_name, record.last_name)
        and candidate.date_of_birth == (record.date_of_birth or "").strip()
    ):
        return DuplicateField.NAME_DOB
    return None


def has_match_keys(candidate: NewEmployee) -> bool:
    return bool(candidate.email or candidate.contact or candidate.date_of_birth)


class ConflictSource(Protocol):
    def find_conflicting(
        self, candidate: NewEmployee, *, exclude_identifier: Optional[str] = None
    ) -> Optional[EmployeeRecord]:
        raise NotImplementedError


class DuplicateDetector:
    def __init__(self, store: ConflictSource):
        self._store = store

    def find_match(
        self, candidate: NewEmployee, *, exclude_identifier: Optional[str] = None
    ) -> Optional[DuplicateField]:
        if not has_match_keys(candidate):
            return None
        existing = self._store.find_conflicting(candidate, exclude_identifier=exclude_identifier)
        if existing is None:
            return None
        return match_field(candidate, existing)

    def ensure_unique(self, candidate: NewEmployee, *, exclude_identifier: Optional[str] = None) -> None:
        field = self.find_match(candidate, exclude_identifier=exclude_identifier)
        if field is not None:
            raise DuplicateError(field)
