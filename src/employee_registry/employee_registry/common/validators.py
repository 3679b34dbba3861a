from __future__ import annotations

import re
from datetime import date, datetime
from typing import Optional, Union

from ..core.exceptions import ValidationError

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def optional_text(value: Optional[str]) -> str:
    """Trim free text; missing values become empty strings."""
    if value is None:
        return ""
    return str(value).strip()


def normalize_email(value: Optional[str]) -> str:
    email = optional_text(value).lower()
    if email and not _EMAIL_RE.match(email):
        raise ValidationError(f"{email} is not a valid email")
    return email


def normalize_dob(value: Union[str, date, None]) -> str:
    """Dates of birth are compared as text; date objects become YYYY-MM-DD."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return optional_text(value)
