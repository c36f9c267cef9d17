"""Consumption CSV import and export.

Import reads flat exports with columns: interval_start, interval_end, consumption
(consumption_kwh is accepted as an alias). Export writes one row per day with
48 half-hourly columns.
"""

import csv
from pathlib import Path

from ..models import ConsumptionSlot

SLOTS_PER_DAY = 48
REQUIRED_COLUMNS = ("interval_start", "interval_end")


def parse_csv(csv_path: Path) -> list[ConsumptionSlot]:
    """Parse a flat consumption CSV file, oldest slot first."""
    slots = []
    with open(csv_path, newline="") as f:
        reader = csv.DictReader(f)
        columns = reader.fieldnames or []
        missing = [c for c in REQUIRED_COLUMNS if c not in columns]
        if "consumption" not in columns and "consumption_kwh" not in columns:
            missing.append("consumption")
        if missing:
            raise ValueError(f"{csv_path}: missing column(s) {', '.join(missing)}")
        for row in reader:
            if "consumption" not in row and "consumption_kwh" in row:
                row["consumption"] = row["consumption_kwh"]
            if None in row.values():
                raise ValueError(f"{csv_path}: line {reader.line_num}: too few fields")
            slots.append(ConsumptionSlot.from_api(row))
    slots.sort(key=lambda s: s.interval_start)
    return slots


def write_consumption_grid(csv_path: Path, slots: list[ConsumptionSlot]) -> int:
    """Write consumption as a day-by-half-hour grid. Returns number of days written.

    The header is 'Date' followed by the start time of each of the first 48
    slots. Trailing slots that do not fill a whole day are left out.
    """
    days = len(slots) // SLOTS_PER_DAY
    with open(csv_path, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(
            ["Date"] + [s.interval_start.strftime("%H:%M") for s in slots[:SLOTS_PER_DAY]]
        )
        for day in range(days):
            day_slots = slots[day * SLOTS_PER_DAY:(day + 1) * SLOTS_PER_DAY]
            writer.writerow(
                [day_slots[0].interval_start.strftime("%Y-%m-%d")]
                + [s.consumption for s in day_slots]
            )
    return days
