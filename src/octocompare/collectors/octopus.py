"""Octopus Energy REST API client.

Fetches grid supply points, meter points, half-hourly consumption, products
and tariff rate histories. Authenticates with the account API key as the
HTTP basic-auth user name and an empty password.

Docs: https://developer.octopus.energy/docs/api/
"""

import logging
import re
from dataclasses import replace
from datetime import datetime
from typing import Any, Iterable

import httpx

from ..models import (
    ConsumptionSlot,
    Product,
    RateWindow,
    TariffSummary,
    TariffType,
    parse_timestamp,
)

logger = logging.getLogger(__name__)

API_BASE_URL = "https://api.octopus.energy/v1/"
DEFAULT_TIMEOUT = 30.0
CONSUMPTION_PAGE_SIZE = 25000  # API maximum


class OctopusError(Exception):
    """Base exception for Octopus API errors."""
    pass


def _optional_timestamp(value: str | None) -> datetime | None:
    return parse_timestamp(value) if value else None


def _rate(value: Any) -> float | None:
    return float(value) if value is not None else None


def parse_tariffs(data: dict) -> dict[str, tuple[TariffSummary, ...]]:
    """Parse the per-region tariff sections of a product document.

    Returns tariffs keyed by region, in TariffType order within each region.
    """
    by_region: dict[str, list[TariffSummary]] = {}
    for tariff_type in TariffType:
        for region, payment_models in (data.get(tariff_type.api_key) or {}).items():
            for payment_model, t in payment_models.items():
                by_region.setdefault(region, []).append(
                    TariffSummary(
                        tariff_code=t["code"],
                        tariff_type=tariff_type,
                        payment_model=payment_model,
                        standing_charge_inc_vat=_rate(t.get("standing_charge_inc_vat")),
                        standard_unit_rate_inc_vat=_rate(t.get("standard_unit_rate_inc_vat")),
                        day_unit_rate_inc_vat=_rate(t.get("day_unit_rate_inc_vat")),
                        night_unit_rate_inc_vat=_rate(t.get("night_unit_rate_inc_vat")),
                    )
                )
    return {region: tuple(tariffs) for region, tariffs in by_region.items()}


def parse_product(data: dict, region: str | None = None) -> Product:
    """Parse a product detail document."""
    return Product(
        code=data["code"],
        display_name=data.get("display_name", ""),
        full_name=data.get("full_name", ""),
        description=data.get("description", ""),
        brand=data.get("brand"),
        term=data.get("term"),
        is_variable=bool(data.get("is_variable")),
        is_green=bool(data.get("is_green")),
        is_tracker=bool(data.get("is_tracker")),
        is_prepay=bool(data.get("is_prepay")),
        is_business=bool(data.get("is_business")),
        is_restricted=bool(data.get("is_restricted")),
        available_from=_optional_timestamp(data.get("available_from")),
        available_to=_optional_timestamp(data.get("available_to")),
        tariffs_active_at=_optional_timestamp(data.get("tariffs_active_at")),
        region=region,
        tariffs=parse_tariffs(data),
    )


def filter_products(
    products: Iterable[dict],
    match: str | None = None,
    brand: str | None = None,
    export: bool = False,
) -> list[dict]:
    """Select products by display name and brand patterns and by direction."""
    direction = "EXPORT" if export else "IMPORT"
    selected = []
    for p in products:
        if match and not re.search(match, p.get("display_name") or ""):
            continue
        if brand and not re.search(brand, p.get("brand") or ""):
            continue
        if p.get("direction") != direction:
            continue
        selected.append(p)
    return selected


class OctopusClient:
    """Thin wrapper around an httpx.Client for the Octopus API."""

    def __init__(
        self,
        api_key: str,
        base_url: str = API_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        self._client = httpx.Client(
            base_url=base_url,
            auth=(api_key, ""),
            timeout=timeout,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "OctopusClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def fetch(self, path: str, params: dict | None = None) -> dict:
        """GET a path (or absolute URL) and decode the JSON body."""
        try:
            response = self._client.get(path, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise OctopusError(f"{path}: HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise OctopusError(f"{path}: {e}") from e
        return response.json()

    def fetch_all(self, path: str, params: dict | None = None) -> list[dict]:
        """Fetch every page of a paginated endpoint."""
        results: list[dict] = []
        url: str | None = path
        while url:
            data = self.fetch(url, params)
            results.extend(data.get("results", []))
            url = data.get("next")
            params = None  # the next link carries the query
        return results

    def grid_supply_points(self, postcode: str) -> list[dict]:
        return self.fetch("industry/grid-supply-points/", {"postcode": postcode}).get("results", [])

    def resolve_region(self, postcode: str | None) -> str | None:
        """Get the grid supply point group id for a postcode, if unique."""
        if not postcode:
            return None
        gsps = self.grid_supply_points(postcode)
        if len(gsps) == 1:
            region = gsps[0]["group_id"]
            logger.info("postcode <%s>: grid supply point PES name: %s", postcode, region)
            return region
        logger.warning("postcode <%s>: grid supply point not uniquely found", postcode)
        return None

    def electricity_meter_point(self, mpan: str) -> dict:
        return self.fetch(f"electricity-meter-points/{mpan}/")

    def consumption(
        self,
        mpan: str,
        serial: str,
        period_from: datetime | None = None,
        period_to: datetime | None = None,
    ) -> list[ConsumptionSlot]:
        """Fetch half-hourly consumption, oldest first."""
        params = {"page_size": CONSUMPTION_PAGE_SIZE, "order_by": "period"}
        if period_from:
            params["period_from"] = period_from.isoformat()
        if period_to:
            params["period_to"] = period_to.isoformat()
        rows = self.fetch_all(f"electricity-meter-points/{mpan}/meters/{serial}/consumption/", params)
        return [ConsumptionSlot.from_api(row) for row in rows]

    def products(self, available_at: datetime | None = None) -> list[dict]:
        params = {"available_at": available_at.isoformat()} if available_at else {}
        return self.fetch_all("products/", params)

    def tariff_charges(
        self,
        product_code: str,
        tariff_code: str,
        tariff_type: TariffType,
        period_from: datetime | None = None,
        period_to: datetime | None = None,
    ) -> tuple[list[RateWindow], list[RateWindow], list[RateWindow] | None]:
        """Fetch standing charge and unit rate histories for a tariff.

        Returns:
            (standing_charges, primary_unit_rates, secondary_unit_rates or None)
        """
        params = {}
        if period_from:
            params["period_from"] = period_from.isoformat()
        if period_to:
            params["period_to"] = period_to.isoformat()

        base = f"products/{product_code}/{tariff_type.fuel}-tariffs/{tariff_code}/"
        standing_charges = [
            RateWindow.from_api(r) for r in self.fetch_all(base + "standing-charges/", params)
        ]
        unit_rates = [
            [RateWindow.from_api(r) for r in self.fetch_all(base + endpoint + "/", params)]
            for endpoint in tariff_type.unit_rate_endpoints
        ]
        secondary = unit_rates[1] if len(unit_rates) > 1 else None
        return standing_charges, unit_rates[0], secondary

    def product(
        self,
        code: str,
        region: str | None = None,
        tariffs_active_at: datetime | None = None,
        period_from: datetime | None = None,
        period_to: datetime | None = None,
    ) -> Product:
        """Fetch a product, with rate history for its region when a period is given."""
        params = {"tariffs_active_at": tariffs_active_at.isoformat()} if tariffs_active_at else {}
        product = parse_product(self.fetch(f"products/{code}/", params), region)

        if region and period_from and region in product.tariffs:
            tariffs = dict(product.tariffs)
            tariffs[region] = tuple(
                tariff.with_rate_history(
                    *self.tariff_charges(code, tariff.tariff_code, tariff.tariff_type, period_from, period_to)
                )
                for tariff in product.tariffs[region]
            )
            product = replace(product, tariffs=tariffs)
        return product
