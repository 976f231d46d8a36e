"""
Calendar helpers shared by the ledger, the importers and the feed sync.

Ledger dates are ISO `YYYY-MM-DD` strings and periods are `YYYY-MM` (month)
or `YYYY` (year) prefixes of them, so period filtering is a string prefix
test. Anything coming from outside must pass through `normalize_date` first.
"""

import calendar
import re
from datetime import date, datetime, timezone
from typing import Iterator, Optional, Union

SECONDS_PER_DAY = 24 * 60 * 60

MONTH_KEY_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"
YEAR_KEY_PATTERN = r"^\d{4}$"

_ISO_PREFIX = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})")
_SLASHED = re.compile(r"^(\d{1,2})[/.-](\d{1,2})(?:[/.-](\d{2}|\d{4}))?$")
_MONTH_KEY = re.compile(MONTH_KEY_PATTERN)
_YEAR_KEY = re.compile(YEAR_KEY_PATTERN)

_TEXT_FORMATS = ("%d %b %Y", "%d %B %Y", "%b %d, %Y", "%B %d, %Y", "%b %d %Y")


def normalize_date(
    value: Union[str, date, datetime, None],
    today: Optional[date] = None,
) -> str:
    """
    Normalize a date-ish value to ISO `YYYY-MM-DD`.

    Accepts:
    - date / datetime objects
    - ISO strings, optionally followed by a time component
    - US-style `M/D/YYYY`, `M/D/YY` and `M/D` (year taken from `today`)
    - spelled-out forms such as `5 Nov 2025` or `Nov 5, 2025`

    Raises ValueError for anything else, including impossible dates.
    """
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if value is None:
        raise ValueError("Date is required")

    text = str(value).strip()
    if not text:
        raise ValueError("Date is required")

    match = _ISO_PREFIX.match(text)
    if match:
        year, month, day = (int(part) for part in match.groups())
        return date(year, month, day).isoformat()

    match = _SLASHED.match(text)
    if match:
        month, day, year_text = match.groups()
        if year_text is None:
            year = (today or date.today()).year
        elif len(year_text) == 2:
            year = 2000 + int(year_text)
        else:
            year = int(year_text)
        return date(year, int(month), int(day)).isoformat()

    for fmt in _TEXT_FORMATS:
        try:
            return datetime.strptime(text, fmt).date().isoformat()
        except ValueError:
            continue

    raise ValueError(f"Unrecognized date: {text!r}")


def epoch_to_iso_date(seconds: int) -> str:
    """UTC calendar date of a unix timestamp."""
    return datetime.fromtimestamp(seconds, tz=timezone.utc).date().isoformat()


def month_key(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}"


def is_month_key(value: str) -> bool:
    return bool(_MONTH_KEY.match(value or ""))


def is_year_key(value: str) -> bool:
    return bool(_YEAR_KEY.match(value or ""))


def days_in_month(period: str) -> int:
    """Number of days in a `YYYY-MM` period."""
    if not is_month_key(period):
        raise ValueError(f"Not a month key: {period!r}")
    year, month = (int(part) for part in period.split("-"))
    return calendar.monthrange(year, month)[1]


def next_month(period: str) -> str:
    if not is_month_key(period):
        raise ValueError(f"Not a month key: {period!r}")
    year, month = (int(part) for part in period.split("-"))
    if month == 12:
        return f"{year + 1:04d}-01"
    return f"{year:04d}-{month + 1:02d}"


def iter_months(start: str, end: str) -> Iterator[str]:
    """Yield every month key from `start` to `end`, both inclusive."""
    if not is_month_key(start) or not is_month_key(end):
        raise ValueError(f"Not a month range: {start!r}..{end!r}")
    current = start
    while current <= end:
        yield current
        current = next_month(current)
