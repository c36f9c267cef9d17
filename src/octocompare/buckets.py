"""Map timestamps onto reporting buckets and days."""

import re
from datetime import datetime, timedelta

SECONDS_PER_DAY = 86400
DEFAULT_PERIOD = timedelta(weeks=1)

# Unit name -> seconds. Months are taken as 30 days.
PERIOD_UNITS = {
    "second": 1,
    "sec": 1,
    "minute": 60,
    "min": 60,
    "hour": 3600,
    "day": SECONDS_PER_DAY,
    "week": 7 * SECONDS_PER_DAY,
    "fortnight": 14 * SECONDS_PER_DAY,
    "month": 30 * SECONDS_PER_DAY,
}

# A bare number is a count of seconds.
PERIOD_PATTERN = re.compile(r"^\s*(\d+)\s*(?:\.?\s*([a-z]+?)s?)?\s*$")


def elapsed_seconds(timestamp: datetime, reference_start: datetime) -> int:
    """Whole seconds from reference_start to timestamp (truncated)."""
    delta = timestamp - reference_start
    if delta < timedelta(0):
        raise ValueError(
            f"timestamp {timestamp.isoformat()} is before reference start {reference_start.isoformat()}"
        )
    return int(delta.total_seconds())


def bucket_index(timestamp: datetime, reference_start: datetime, bucket_duration: timedelta) -> int:
    """Index of the bucket containing timestamp, counting from reference_start."""
    duration = int(bucket_duration.total_seconds())
    if duration <= 0:
        raise ValueError(f"bucket duration must be positive, got {bucket_duration}")
    return elapsed_seconds(timestamp, reference_start) // duration


def day_index(timestamp: datetime, reference_start: datetime) -> int:
    """Index of the day containing timestamp, counting from reference_start."""
    return elapsed_seconds(timestamp, reference_start) // SECONDS_PER_DAY


def parse_period(text: str) -> timedelta:
    """Parse a bucket length such as '1.week', '2.weeks', '30min' or '604800'."""
    match = PERIOD_PATTERN.match(text.lower())
    if not match:
        raise ValueError(f"Invalid period '{text}', expected e.g. '1.week' or '3 days'")
    count, unit = int(match.group(1)), match.group(2) or "second"
    if unit not in PERIOD_UNITS:
        raise ValueError(f"Unknown period unit '{unit}' in '{text}'")
    if count <= 0:
        raise ValueError(f"Period must be positive, got '{text}'")
    return timedelta(seconds=count * PERIOD_UNITS[unit])
