from __future__ import annotations

import re
from dataclasses import dataclass

from ..core.constants import MAX_SERIAL, SERIAL_WIDTH
from .codes import checksum_digit

_COMPANY_CODE_RE = re.compile(r"^[A-Z0-9]{1,8}$")
_IDENTIFIER_RE = re.compile(r"^([A-Z0-9]{1,8})-(\d{2})-([A-Z]{3})-(\d{6})-(\d)$")


def validate_company_code(value: str) -> str:
    code = (value or "").strip().upper()
    if not _COMPANY_CODE_RE.match(code):
        raise ValueError(f"Invalid company code: {value!r} (1-8 letters or digits)")
    return code


@dataclass(frozen=True)
class Bucket:
    """Scope within which serials are sequenced."""

    company_code: str
    year: str
    dept_code: str

    @property
    def prefix(self) -> str:
        """Identifier prefix shared by every record of the bucket, e.g. ``ART-25-ENG-``."""
        return f"{self.company_code}-{self.year}-{self.dept_code}-"

    def __str__(self) -> str:
        return self.prefix.rstrip("-")


@dataclass(frozen=True)
class EmployeeIdentifier:
    bucket: Bucket
    serial: int

    def __post_init__(self):
        if not 1 <= self.serial <= MAX_SERIAL:
            raise ValueError(f"Serial out of range: {self.serial}")

    @property
    def body(self) -> str:
        return f"{self.bucket.prefix}{self.serial:0{SERIAL_WIDTH}d}"

    @property
    def checksum(self) -> str:
        return checksum_digit(self.body)

    def __str__(self) -> str:
        return f"{self.body}-{self.checksum}"

    @classmethod
    def parse(cls, value: str) -> "EmployeeIdentifier":
        """Parse a full identifier, rejecting malformed text or a wrong checksum digit."""
        m = _IDENTIFIER_RE.match(value or "")
        if not m:
            raise ValueError(f"Malformed identifier: {value!r}")
        company, year, dept, serial, chk = m.groups()
        ident = cls(Bucket(company, year, dept), int(serial))
        if ident.checksum != chk:
            raise ValueError(f"Checksum mismatch for identifier: {value!r}")
        return ident


def serial_of(identifier: str) -> int:
    """Serial field (fourth hyphen-delimited segment) of a well-formed identifier."""
    m = _IDENTIFIER_RE.match(identifier or "")
    if not m:
        raise ValueError(f"Malformed identifier: {identifier!r}")
    return int(m.group(4))
