from __future__ import annotations

from datetime import datetime


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mock it easier.
    """
    return datetime.now()


def two_digit_year(moment: datetime) -> str:
    return f"{moment.year % 100:02d}"
