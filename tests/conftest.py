"""Shared fixtures for building consumption traces, tariffs and products."""

from datetime import datetime, timedelta, timezone

import pytest

from octocompare.models import (
    END_TIME,
    EPOCH,
    ConsumptionSlot,
    Product,
    RateWindow,
    TariffSummary,
    TariffType,
)


@pytest.fixture
def reference_start():
    return datetime(2020, 3, 1, tzinfo=timezone.utc)


@pytest.fixture
def make_slots():
    """Build contiguous half-hourly slots."""

    def make(start: datetime, count: int, kwh: float = 0.5, minutes: int = 30) -> list[ConsumptionSlot]:
        step = timedelta(minutes=minutes)
        return [
            ConsumptionSlot(start + i * step, start + (i + 1) * step, kwh)
            for i in range(count)
        ]

    return make


@pytest.fixture
def make_tariff():
    """Build a tariff with flat rates valid for all time."""

    def make(
        unit_rate: float | None = 20.0,
        standing_charge: float | None = 30.0,
        code: str = "E-1R-TEST-A",
        tariff_type: TariffType = TariffType.SINGLE_REGISTER_ELECTRICITY,
        payment_model: str = "direct_debit_monthly",
    ) -> TariffSummary:
        def schedule(value):
            return [] if value is None else [RateWindow(EPOCH, END_TIME, value)]

        return TariffSummary(
            tariff_code=code,
            tariff_type=tariff_type,
            payment_model=payment_model,
            standing_charge_inc_vat=standing_charge,
            standard_unit_rate_inc_vat=unit_rate,
        ).with_rate_history(schedule(standing_charge), schedule(unit_rate))

    return make


@pytest.fixture
def make_product():
    def make(code: str, *tariffs: TariffSummary, region: str | None = "_A") -> Product:
        return Product(
            code=code,
            display_name=code.title(),
            region=region,
            tariffs={region or "_A": tuple(tariffs)} if tariffs else {},
        )

    return make
