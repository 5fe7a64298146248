"""Domain value objects."""

from tunealert.domain.value_objects.release_dates import (
    is_within_window,
    lookback_cutoff,
    parse_release_date,
    window_cutoff,
)

__all__ = [
    "is_within_window",
    "lookback_cutoff",
    "parse_release_date",
    "window_cutoff",
]
