"""Pure helpers used to build identifiers.

Both functions are total: they never raise for any string input.
"""

from __future__ import annotations

import re
from typing import Optional

from ..core.constants import DEPT_CODE_FILLER, DEPT_CODE_LENGTH, FALLBACK_DEPT_CODE

_NON_LATIN_UPPER = re.compile(r"[^A-Z]")


def dept_code(department: Optional[str]) -> str:
    """Reduce a free-text department to exactly 3 uppercase Latin letters.

    >>> dept_code("engineering!")
    'ENG'
    >>> dept_code("ab")
    'ABX'
    """
    if not department:
        return FALLBACK_DEPT_CODE
    letters = _NON_LATIN_UPPER.sub("", department.upper())
    return letters[:DEPT_CODE_LENGTH].ljust(DEPT_CODE_LENGTH, DEPT_CODE_FILLER)


def _utf16_code_units(text: str) -> list[int]:
    raw = text.encode("utf-16-le", "surrogatepass")
    return [int.from_bytes(raw[i : i + 2], "little") for i in range(0, len(raw), 2)]


def checksum_digit(text: str) -> str:
    """Detection digit ``0``-``8`` for ``text``.

    Every UTF-16 code unit is written out in decimal, the decimal strings are
    concatenated and all digits of the result are summed modulo 9. Code units
    are taken from UTF-16 so identifiers issued earlier keep validating.
    """
    stream = "".join(str(unit) for unit in _utf16_code_units(text))
    return str(sum(int(d) for d in stream) % 9)
