"""Standing and consumption charge calculation over a consumption trace.

Charges are accumulated per reporting bucket: standing charges are added on
each day rollover, consumption charges on every slot, and both are folded
into the run totals when a slot opens a new bucket. The final partial bucket
is not folded in; callers wanting a complete period must supply one slot
past its end.
"""

import logging
from datetime import datetime, timedelta
from typing import Iterable, Sequence

from .buckets import bucket_index, day_index
from .models import ConsumptionSlot, Product, TariffSummary, TariffType
from .rates import NoMatchingRate, find_rate

logger = logging.getLogger(__name__)

MISSING_RATE_THRESHOLD = 5


class NoTariffForRegion(LookupError):
    """A product has no tariffs recorded for the selected region."""

    def __init__(self, product_code: str, region: str | None):
        self.product_code = product_code
        self.region = region
        super().__init__(f"skipping product {product_code} as it has no tariffs for region {region}")


class TooManyMissingRates(RuntimeError):
    """Unit rates are missing for too many slots to trust the comparison."""


class MissingRateCounter:
    """Counts missing unit rates across one comparison run."""

    def __init__(self, threshold: int = MISSING_RATE_THRESHOLD):
        self.threshold = threshold
        self.count = 0

    def record(self, error: NoMatchingRate) -> None:
        """Count a missing rate, aborting the run once past the threshold."""
        self.count += 1
        if self.count > self.threshold:
            raise TooManyMissingRates(
                f"too many missing rates ({self.count}), last: {error}"
            ) from error


def calc_tariff_charges(
    tariffs: Iterable[TariffSummary],
    reference_start: datetime,
    bucket_duration: timedelta,
    slots: Sequence[ConsumptionSlot],
    missing_rates: MissingRateCounter,
    payment_model: str | None = None,
) -> tuple[float, float]:
    """Calculate total standing and consumption charges in pence.

    Only single-register electricity tariffs are priced. Totals are summed
    over every such tariff in the set.

    Returns:
        (total_standing_charge, total_consumption_charge), unrounded
    """
    total_sc = 0.0
    total_tc = 0.0

    for tariff in tariffs:
        if tariff.tariff_type is not TariffType.SINGLE_REGISTER_ELECTRICITY:
            logger.debug("skipping tariff %s of type %s", tariff.tariff_code, tariff.tariff_type.value)
            continue
        if payment_model and tariff.payment_model != payment_model:
            logger.debug("skipping tariff %s with payment model %s", tariff.tariff_code, tariff.payment_model)
            continue

        logger.info("Comparing to tariff %s...", tariff.tariff_code)
        bucket_marker = 0
        day_marker = 0
        bucket = 0.0
        standing_charge = 0.0

        for slot in slots:
            start = slot.interval_start
            finish = slot.interval_end

            day_number = day_index(start, reference_start)
            if day_number > day_marker:
                try:
                    standing_charge += (day_number - day_marker) * find_rate(
                        tariff.standing_charges, start, finish
                    )
                except NoMatchingRate as e:
                    logger.warning("standing charge: %s", e)
                day_marker = day_number

            bucket_number = bucket_index(start, reference_start, bucket_duration)
            if bucket_number > bucket_marker:
                logger.debug(
                    "%s: bucket %d full; sc: %s; cost: %s",
                    start.isoformat(),
                    bucket_marker,
                    standing_charge,
                    bucket,
                )
                total_sc += standing_charge
                total_tc += bucket
                bucket = 0.0
                standing_charge = 0.0
                bucket_marker = bucket_number

            try:
                bucket += slot.consumption * find_rate(tariff.standard_unit_rates, start, finish)
            except NoMatchingRate as e:
                logger.warning("tariff charge: %s", e)
                missing_rates.record(e)

    return total_sc, total_tc


def calc_charges(
    product: Product,
    reference_start: datetime,
    bucket_duration: timedelta,
    slots: Sequence[ConsumptionSlot],
    missing_rates: MissingRateCounter | None = None,
    payment_model: str | None = None,
) -> tuple[float, float]:
    """Calculate a product's charges for its selected region.

    Raises:
        NoTariffForRegion: if the product has no tariffs in that region
        TooManyMissingRates: if unit rates are missing too often
    """
    if product.region is None:
        logger.warning("specify a postcode to allow retrieval of tariff charges")

    tariffs = product.regional_tariffs()
    if not tariffs:
        raise NoTariffForRegion(product.code, product.region)

    if missing_rates is None:
        missing_rates = MissingRateCounter()

    return calc_tariff_charges(
        tariffs, reference_start, bucket_duration, slots, missing_rates, payment_model
    )
