"""Release date parsing and freshness checks.

Hey future me - Spotify release dates come in three precisions:

- "day":   "2025-06-01"
- "month": "2025-06"
- "year":  "2025"  (older catalog entries, sometimes "0000" for garbage data)

We always produce a naive ``date`` pinned to the FIRST day of the period, so a
year-precision "2025" becomes 2025-01-01. That keeps comparisons simple and errs
on the side of "older", which is what you want for a freshness filter.

The notification window is hour-based (6h) but dates are day-based. We compare at
day precision: a release passes when its date is on or after the calendar day of
``now - window``. With now=2025-06-01T12:00Z and a 6h window, a release dated
2025-06-01 passes and 2025-05-28 does not. A release dated "today" always passes
regardless of time of day, because the provider gives us nothing finer.
"""

from calendar import monthrange
from datetime import UTC, date, datetime, timedelta

DATE_PRECISIONS = ("day", "month", "year")


def _guess_precision(value: str) -> str:
    parts = value.count("-")
    if parts >= 2:
        return "day"
    if parts == 1:
        return "month"
    return "year"


def parse_release_date(value: str | None, precision: str | None = None) -> date | None:
    """Parse a catalog release date respecting its precision.

    Args:
        value: Raw release_date string from the catalog
        precision: Catalog's release_date_precision ("day", "month", "year").
            Guessed from the string shape when missing or unknown.

    Returns:
        Naive date pinned to the start of the period, or None if unparseable
    """
    if not value:
        return None

    value = value.strip()
    if precision not in DATE_PRECISIONS:
        precision = _guess_precision(value)

    try:
        if precision == "day":
            return date.fromisoformat(value[:10])
        if precision == "month":
            year, month = value.split("-")[:2]
            return date(int(year), int(month), 1)
        return date(int(value[:4]), 1, 1)
    except ValueError:
        # "0000" and friends end up here - date() refuses year 0
        return None


def subtract_months(day: date, months: int) -> date:
    """Go back N calendar months, clamping to the end of shorter months."""
    total = day.year * 12 + (day.month - 1) - months
    year, month = divmod(total, 12)
    month += 1
    # Day 31 -> 30/29/28 when the target month is shorter
    return date(year, month, min(day.day, monthrange(year, month)[1]))


def lookback_cutoff(now: datetime, months: int) -> date:
    """Oldest release date still relevant for the catalog lookback window."""
    return subtract_months(_as_utc(now).date(), months)


def window_cutoff(now: datetime, window: timedelta) -> date:
    """Oldest release date still counted as "new" for a notification window."""
    return (_as_utc(now) - window).date()


def is_within_window(release_date: date, now: datetime, window: timedelta) -> bool:
    """Check whether a day-precision release date falls inside the freshness window.

    Future dates (pre-announced releases) pass too; the catalog occasionally lists them.
    """
    return release_date >= window_cutoff(now, window)


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)
