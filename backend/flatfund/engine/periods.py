"""Fiscal period helpers.

The society fiscal year starts in April:

    Apr–Jun → Q1    Jul–Sep → Q2    Oct–Dec → Q3    Jan–Mar → Q4

The year in the label is the calendar year of the date itself, so
2024-03-31 is ``Q4-2024`` (not ``Q4-2023``).  Stored quarter labels on
existing submissions use this convention and must keep matching.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Optional, Union

DateLike = Union[date, datetime, str, None]

_DATE_FORMATS = [
    "%Y-%m-%d", "%d-%m-%Y", "%d/%m/%Y", "%d.%m.%Y", "%Y/%m/%d",
]

# "2024-04-10T18:30:00", "2024-04-10 18:30:00.123+05:30": keep the calendar date as written
_ISO_DATETIME_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})[T ]")


def parse_date(value: DateLike) -> Optional[date]:
    """Parse a calendar date without any timezone shift.

    Accepts ``date``/``datetime`` objects and strings in ISO or common
    Indian day-first formats.  Blank input returns None; anything else that
    cannot be parsed raises ValueError.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Unsupported date value: {value!r}")

    text = value.strip()
    if not text:
        return None

    m = _ISO_DATETIME_RE.match(text)
    if m:
        text = m.group(1)

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Unrecognised date: {value!r}")


def quarter_number(month: int) -> int:
    """Fiscal quarter (1-4) for a calendar month (1-12)."""
    if 4 <= month <= 6:
        return 1
    if 7 <= month <= 9:
        return 2
    if 10 <= month <= 12:
        return 3
    return 4


def fiscal_quarter(payment_date: DateLike, submitted_at: DateLike = None) -> str:
    """Return the ``Q<n>-<year>`` label for a payment.

    Falls back to ``submitted_at`` (default: now) when no payment date is
    given.
    """
    d = parse_date(payment_date)
    if d is None:
        d = parse_date(submitted_at) or datetime.now().date()
    return f"Q{quarter_number(d.month)}-{d.year}"


def fiscal_year_label(value: DateLike) -> str:
    """Financial-year label such as ``2024-25`` for any date in Apr 2024–Mar 2025."""
    d = parse_date(value)
    if d is None:
        raise ValueError("fiscal_year_label requires a date")
    start = d.year if d.month >= 4 else d.year - 1
    return f"{start}-{str(start + 1)[-2:]}"
