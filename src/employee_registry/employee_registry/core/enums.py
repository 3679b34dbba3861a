from __future__ import annotations

from enum import Enum


class DuplicateField(str, Enum):
    """Which rule of the duplicate detector matched an existing record."""

    EMAIL = "email"
    CONTACT = "contact"
    NAME_DOB = "name+dob"


class AllocationStage(str, Enum):
    """Steps an allocation passes through, in order."""

    VALIDATED = "VALIDATED"
    DUPLICATE_CHECKED = "DUPLICATE_CHECKED"
    SEQUENCE_ASSIGNED = "SEQUENCE_ASSIGNED"
    PERSISTED = "PERSISTED"


class StoreBackend(str, Enum):
    MYSQL = "mysql"
    MEMORY = "memory"
