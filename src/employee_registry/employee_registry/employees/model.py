from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from datetime import datetime
from typing import Any, Mapping, Optional

from ..common.validators import normalize_dob, normalize_email, optional_text, require_non_empty

# Free-text fields a client may set; everything except the identifier and timestamps.
EDITABLE_FIELDS = (
    "first_name",
    "last_name",
    "department",
    "contact",
    "email",
    "date_of_birth",
    "position",
    "address",
    "blood_group",
    "other",
)

# Request keys accepted for a field besides its own name.
_ALIASES = {
    "first_name": ("firstName",),
    "last_name": ("lastName",),
    "department": ("dept",),
    "date_of_birth": ("dob", "dateOfBirth"),
    "blood_group": ("bloodGroup",),
}


def _pick(data: Mapping[str, Any], field: str):
    for key in (field,) + _ALIASES.get(field, ()):
        if key in data:
            return data[key]
    return None


def _has(data: Mapping[str, Any], field: str) -> bool:
    return any(key in data for key in (field,) + _ALIASES.get(field, ()))


@dataclass(frozen=True)
class EmployeeRecord:
    """Domain entity: a stored employee.

    Note: `identifier` is assigned once at creation and never changes.
    """

    identifier: str
    first_name: str
    last_name: str
    created_at: datetime
    department: str = ""
    contact: str = ""
    email: str = ""
    date_of_birth: str = ""
    position: str = ""
    address: str = ""
    blood_group: str = ""
    other: str = ""
    photo_url: Optional[str] = None
    photo_ref: Optional[str] = None
    updated_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def to_dict(self) -> dict:
        out = asdict(self)
        out.pop("photo_ref")
        out["created_at"] = self.created_at.isoformat()
        out["updated_at"] = self.updated_at.isoformat() if self.updated_at else None
        return out


@dataclass(frozen=True)
class NewEmployee:
    """Validated client input for an allocation (or an update)."""

    first_name: str
    last_name: str
    department: str = ""
    contact: str = ""
    email: str = ""
    date_of_birth: str = ""
    position: str = ""
    address: str = ""
    blood_group: str = ""
    other: str = ""

    @classmethod
    def from_input(cls, data: Mapping[str, Any]) -> "NewEmployee":
        return cls(
            first_name=require_non_empty(_pick(data, "first_name"), "first_name"),
            last_name=require_non_empty(_pick(data, "last_name"), "last_name"),
            department=optional_text(_pick(data, "department")),
            contact=optional_text(_pick(data, "contact")),
            email=normalize_email(_pick(data, "email")),
            date_of_birth=normalize_dob(_pick(data, "date_of_birth")),
            position=optional_text(_pick(data, "position")),
            address=optional_text(_pick(data, "address")),
            blood_group=optional_text(_pick(data, "blood_group")),
            other=optional_text(_pick(data, "other")),
        )

    @classmethod
    def merged(cls, existing: EmployeeRecord, changes: Mapping[str, Any]) -> "NewEmployee":
        """Fields present in `changes` override the stored ones; the rest are kept."""
        data = {f: (_pick(changes, f) if _has(changes, f) else getattr(existing, f)) for f in EDITABLE_FIELDS}
        return cls.from_input(data)

    def to_record(self, identifier: str, *, created_at: datetime, photo_url: Optional[str] = None) -> EmployeeRecord:
        return EmployeeRecord(
            identifier=identifier,
            created_at=created_at,
            photo_url=photo_url or None,
            **{f: getattr(self, f) for f in EDITABLE_FIELDS},
        )

    def apply_to(self, record: EmployeeRecord, *, updated_at: datetime) -> EmployeeRecord:
        return replace(record, updated_at=updated_at, **{f: getattr(self, f) for f in EDITABLE_FIELDS})


@dataclass(frozen=True)
class AllocationResult:
    """Outcome of a committed allocation.

    `proof_error` / `photo_error` report work that failed after the record was
    persisted; the record stays committed either way.
    """

    record: EmployeeRecord
    verify_url: str
    proofs: Optional[Any] = None
    proof_error: Optional[str] = None
    photo_error: Optional[str] = None

    @property
    def identifier(self) -> str:
        return self.record.identifier

    @property
    def is_partial(self) -> bool:
        return bool(self.proof_error or self.photo_error)
