"""Rank products by what a consumption trace would have cost on each."""

import logging
from datetime import datetime, timedelta
from typing import Iterable, Sequence

from .charges import MissingRateCounter, NoTariffForRegion, calc_charges
from .models import Comparison, ConsumptionSlot, Product, TariffComparison

logger = logging.getLogger(__name__)


def pence_to_pounds(pence: float) -> float:
    """Convert pence to pounds."""
    return pence / 100.0


def rank_results(
    comparator_code: str,
    results: dict[str, tuple[float, float]],
    period_start: datetime,
    period_end: datetime | None = None,
) -> Comparison:
    """Build a Comparison from per-product (standing, consumption) charges.

    results must include the comparator. Alternatives are listed most
    expensive first, so the winner (cheapest) is last.
    """
    sc, tc = results[comparator_code]
    comparator_total = pence_to_pounds(sc + tc)
    comparator = TariffComparison(
        code=comparator_code, sc=sc, tc=tc, total=comparator_total, saving=0.0, is_comparator=True
    )

    ranked = sorted(results.items(), key=lambda item: item[1][0] + item[1][1])
    ranked.reverse()

    alternatives = []
    for code, (sc, tc) in ranked:
        total = pence_to_pounds(sc + tc)
        alternatives.append(
            TariffComparison(
                code=code,
                sc=sc,
                tc=tc,
                total=total,
                saving=comparator_total - total,
                is_comparator=code == comparator_code,
            )
        )

    return Comparison(
        period_start=period_start,
        period_end=period_end,
        comparator=comparator,
        alternatives=alternatives,
    )


def compare(
    comparator_product: Product,
    candidate_products: Iterable[Product],
    reference_start: datetime,
    bucket_duration: timedelta,
    slots: Sequence[ConsumptionSlot],
    period_end: datetime | None = None,
    payment_model: str | None = None,
) -> Comparison:
    """Price the comparator and every candidate over the same consumption.

    Candidates with no tariffs for the region are logged and skipped, and
    candidates costing exactly nothing are left out of the ranking.

    Raises:
        NoTariffForRegion: if the comparator itself has no tariffs
        TooManyMissingRates: if unit rates are missing too often in the run
    """
    missing_rates = MissingRateCounter()

    results = {
        comparator_product.code: calc_charges(
            comparator_product, reference_start, bucket_duration, slots, missing_rates, payment_model
        )
    }

    for product in candidate_products:
        if product.code in results:
            continue
        try:
            sc, tc = calc_charges(
                product, reference_start, bucket_duration, slots, missing_rates, payment_model
            )
        except NoTariffForRegion as e:
            logger.warning("%s", e)
            continue
        if sc == 0 and tc == 0:
            logger.debug("skipping product %s with no applicable charges", product.code)
            continue
        results[product.code] = (sc, tc)

    return rank_results(comparator_product.code, results, reference_start, period_end)
