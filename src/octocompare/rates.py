"""Rate lookup within validity-windowed rate schedules."""

import logging
from datetime import datetime
from typing import Iterable

from .models import END_TIME, EPOCH, RateWindow, parse_valid_from, parse_valid_to

__all__ = [
    "END_TIME",
    "EPOCH",
    "NoMatchingRate",
    "find_rate",
    "parse_valid_from",
    "parse_valid_to",
    "window_contains",
]

logger = logging.getLogger(__name__)


class NoMatchingRate(LookupError):
    """No rate window covers a consumption interval."""

    def __init__(self, interval_start: datetime, interval_end: datetime):
        self.interval_start = interval_start
        self.interval_end = interval_end
        super().__init__(
            f"no matching rate found for interval {interval_start.isoformat()} "
            f"to {interval_end.isoformat()}"
        )


def window_contains(window: RateWindow, instant: datetime) -> bool:
    """Check if an instant falls within a window (both bounds inclusive)."""
    return window.valid_from <= instant <= window.valid_to


def find_rate(
    schedule: Iterable[RateWindow] | None, interval_start: datetime, interval_end: datetime
) -> float:
    """Get the rate applicable to a whole interval.

    The first window (in schedule order) covering both ends wins. A window
    covering only the start is reported and skipped; charges are never split
    across windows.

    Raises:
        NoMatchingRate: if no window covers the interval
    """
    for window in schedule or ():
        if not window_contains(window, interval_start):
            continue
        if window_contains(window, interval_end):
            return float(window.value_inc_vat)
        logger.warning(
            "finish time %s of consumption slot is after end of rate validity %s",
            interval_end.isoformat(),
            window.valid_to.isoformat(),
        )

    raise NoMatchingRate(interval_start, interval_end)
