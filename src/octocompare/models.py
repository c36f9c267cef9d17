"""Data models for consumption, tariffs and comparison results."""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
# Stands in for an open-ended validity window
END_TIME = datetime(2116, 2, 19, tzinfo=timezone.utc)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 string to an aware UTC datetime (naive input is UTC)."""
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_valid_from(value: str | None) -> datetime:
    """Parse the start of a validity window; anything unparsable is the epoch."""
    try:
        return parse_timestamp(value)
    except (TypeError, ValueError) as e:
        logger.debug("valid_from: parsing %r gives %s", value, e)
        return EPOCH


def parse_valid_to(value: str | None) -> datetime:
    """Parse the end of a validity window; missing or unparsable means END_TIME."""
    if value is None:
        return END_TIME
    try:
        return parse_timestamp(value)
    except (TypeError, ValueError) as e:
        logger.warning("valid_to: parsing %r gives %s", value, e)
        return END_TIME


@dataclass(frozen=True)
class ConsumptionSlot:
    """One metering interval of consumption."""

    interval_start: datetime
    interval_end: datetime
    consumption: float  # kWh

    def __post_init__(self):
        if self.consumption < 0:
            raise ValueError(f"Consumption cannot be negative, got {self.consumption} kWh")

    @classmethod
    def from_api(cls, row: dict) -> "ConsumptionSlot":
        return cls(
            interval_start=parse_timestamp(row["interval_start"]),
            interval_end=parse_timestamp(row["interval_end"]),
            consumption=float(row["consumption"]),
        )


@dataclass(frozen=True)
class RateWindow:
    """A rate valid between two instants (both inclusive)."""

    valid_from: datetime
    valid_to: datetime
    value_inc_vat: float  # pence per kWh, or pence per day for standing charges

    @classmethod
    def from_api(cls, row: dict) -> "RateWindow":
        """Build from an API rate entry, tolerating malformed validity bounds."""
        return cls(
            valid_from=parse_valid_from(row.get("valid_from")),
            valid_to=parse_valid_to(row.get("valid_to")),
            value_inc_vat=float(row["value_inc_vat"]),
        )


# Most recent window first, as returned by the API
RateSchedule = tuple[RateWindow, ...]


class TariffType(str, Enum):
    """The three register/fuel combinations a product can offer."""

    SINGLE_REGISTER_ELECTRICITY = "sr_elec"
    DUAL_REGISTER_ELECTRICITY = "dr_elec"
    SINGLE_REGISTER_GAS = "sr_gas"

    @property
    def fuel(self) -> str:
        return "gas" if self is TariffType.SINGLE_REGISTER_GAS else "electricity"

    @property
    def api_key(self) -> str:
        """Section of the product document listing tariffs of this type."""
        return f"{self.name.lower()}_tariffs"

    @property
    def display_name(self) -> str:
        return self.name.replace("_", " ").capitalize()

    @property
    def unit_rate_endpoints(self) -> tuple[str, ...]:
        """Unit-rate endpoints in (primary, secondary) order."""
        if self is TariffType.DUAL_REGISTER_ELECTRICITY:
            return ("day-unit-rates", "night-unit-rates")
        return ("standard-unit-rates",)


@dataclass(frozen=True)
class TariffSummary:
    """A tariff offered by a product in one region.

    Built from the product document first; rate history is attached later
    with with_rate_history() when a reporting period is known.
    """

    tariff_code: str
    tariff_type: TariffType
    payment_model: str
    standing_charge_inc_vat: float | None = None
    standard_unit_rate_inc_vat: float | None = None
    day_unit_rate_inc_vat: float | None = None
    night_unit_rate_inc_vat: float | None = None

    standing_charges: RateSchedule | None = None
    standard_unit_rates: RateSchedule | None = None
    day_unit_rates: RateSchedule | None = None
    night_unit_rates: RateSchedule | None = None

    @property
    def has_rate_history(self) -> bool:
        return self.standing_charges is not None

    def with_rate_history(
        self,
        standing_charges: list[RateWindow],
        primary: list[RateWindow],
        secondary: list[RateWindow] | None = None,
    ) -> "TariffSummary":
        """Return a copy carrying the given rate schedules.

        primary is the standard schedule for single-register tariffs and the
        day schedule for dual-register ones; secondary is the night schedule.
        """
        if self.tariff_type is TariffType.DUAL_REGISTER_ELECTRICITY:
            return replace(
                self,
                standing_charges=tuple(standing_charges),
                day_unit_rates=tuple(primary),
                night_unit_rates=tuple(secondary or ()),
            )
        return replace(
            self,
            standing_charges=tuple(standing_charges),
            standard_unit_rates=tuple(primary),
        )


@dataclass
class Product:
    """A priceable plan and the tariffs it offers in each region."""

    code: str
    display_name: str
    full_name: str = ""
    description: str = ""
    brand: str | None = None
    term: int | None = None
    is_variable: bool = False
    is_green: bool = False
    is_tracker: bool = False
    is_prepay: bool = False
    is_business: bool = False
    is_restricted: bool = False
    available_from: datetime | None = None
    available_to: datetime | None = None
    tariffs_active_at: datetime | None = None
    region: str | None = None  # grid supply point group id, e.g. "_A"
    tariffs: dict[str, tuple[TariffSummary, ...]] = field(default_factory=dict)

    def regional_tariffs(self) -> tuple[TariffSummary, ...] | None:
        """Tariffs for the selected region, or None if there are none."""
        return self.tariffs.get(self.region) if self.region else None


@dataclass(frozen=True)
class TariffComparison:
    """One tariff's priced result. sc/tc are pence; total/saving are pounds."""

    code: str
    sc: float
    tc: float
    total: float
    saving: float
    is_comparator: bool = False


@dataclass
class Comparison:
    """Outcome of comparing candidate tariffs against a comparator."""

    period_start: datetime
    comparator: TariffComparison
    alternatives: list[TariffComparison]  # most expensive first
    period_end: datetime | None = None

    @property
    def winner(self) -> TariffComparison:
        return self.alternatives[-1]
