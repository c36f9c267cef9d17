"""Tests for the Octopus API client."""

import base64
import logging
from datetime import datetime, timezone

import httpx
import pytest

from octocompare.collectors import octopus
from octocompare.models import TariffType

T0 = datetime(2020, 3, 1, tzinfo=timezone.utc)
T1 = datetime(2020, 3, 8, tzinfo=timezone.utc)

PRODUCT_DOC = {
    "code": "VAR-19-04-12",
    "full_name": "Flexible Octopus April 2019 v1",
    "display_name": "Flexible Octopus",
    "description": "Variable tariff",
    "brand": "OCTOPUS_ENERGY",
    "is_variable": True,
    "is_green": False,
    "term": None,
    "available_from": "2019-04-12T00:00:00+01:00",
    "available_to": None,
    "tariffs_active_at": "2020-03-01T00:00:00Z",
    "single_register_electricity_tariffs": {
        "_A": {
            "direct_debit_monthly": {
                "code": "E-1R-VAR-19-04-12-A",
                "standing_charge_inc_vat": 21.0,
                "standard_unit_rate_inc_vat": 15.96,
            }
        },
        "_B": {
            "direct_debit_monthly": {
                "code": "E-1R-VAR-19-04-12-B",
                "standing_charge_inc_vat": 20.0,
                "standard_unit_rate_inc_vat": 14.8,
            }
        },
    },
    "dual_register_electricity_tariffs": {
        "_A": {
            "direct_debit_monthly": {
                "code": "E-2R-VAR-19-04-12-A",
                "standing_charge_inc_vat": 21.0,
                "day_unit_rate_inc_vat": 17.1,
                "night_unit_rate_inc_vat": 8.4,
            }
        }
    },
    "single_register_gas_tariffs": {},
}


def rates_page(*values, next_url=None):
    return {
        "count": len(values),
        "next": next_url,
        "results": [
            {"valid_from": "2020-01-01T00:00:00Z", "valid_to": None, "value_inc_vat": v} for v in values
        ],
    }


@pytest.fixture
def requests_seen():
    return []


@pytest.fixture
def make_client(requests_seen):
    def make(routes: dict) -> octopus.OctopusClient:
        def handler(request: httpx.Request) -> httpx.Response:
            requests_seen.append(request)
            body = routes.get(request.url.path)
            if body is None:
                return httpx.Response(404, json={"detail": "Not found."})
            if callable(body):
                body = body(request)
            return httpx.Response(200, json=body)

        return octopus.OctopusClient("sk_test_key", transport=httpx.MockTransport(handler))

    return make


def test_requests_use_basic_auth(make_client, requests_seen):
    client = make_client({"/v1/electricity-meter-points/1200000000000/": {"mpan": "1200000000000", "gsp": "_A"}})

    assert client.electricity_meter_point("1200000000000")["gsp"] == "_A"

    expected = base64.b64encode(b"sk_test_key:").decode()
    assert requests_seen[0].headers["Authorization"] == f"Basic {expected}"


def test_resolve_region_unique(make_client):
    client = make_client(
        {"/v1/industry/grid-supply-points/": {"count": 1, "results": [{"group_id": "_C"}]}}
    )
    assert client.resolve_region("SW1A 1AA") == "_C"


def test_resolve_region_ambiguous(make_client, caplog):
    client = make_client(
        {
            "/v1/industry/grid-supply-points/": {
                "count": 2,
                "results": [{"group_id": "_C"}, {"group_id": "_J"}],
            }
        }
    )
    with caplog.at_level(logging.WARNING, logger="octocompare.collectors.octopus"):
        assert client.resolve_region("XX1") is None
    assert "not uniquely found" in caplog.text


def test_resolve_region_without_postcode(make_client, requests_seen):
    assert make_client({}).resolve_region(None) is None
    assert requests_seen == []


def test_fetch_all_follows_next_links(make_client, requests_seen):
    def products(request):
        if request.url.params.get("page") == "2":
            return {"next": None, "results": [{"code": "B"}]}
        return {"next": "https://api.octopus.energy/v1/products/?page=2", "results": [{"code": "A"}]}

    client = make_client({"/v1/products/": products})

    assert [p["code"] for p in client.products(T0)] == ["A", "B"]
    assert requests_seen[0].url.params["available_at"] == T0.isoformat()
    assert requests_seen[1].url.params["page"] == "2"


def test_consumption(make_client, requests_seen):
    client = make_client(
        {
            "/v1/electricity-meter-points/1200000000000/meters/19L0000000/consumption/": {
                "next": None,
                "results": [
                    {
                        "consumption": "0.208",
                        "interval_start": "2020-03-01T00:00:00Z",
                        "interval_end": "2020-03-01T00:30:00Z",
                    },
                    {
                        "consumption": "0.19",
                        "interval_start": "2020-03-01T00:30:00Z",
                        "interval_end": "2020-03-01T01:00:00Z",
                    },
                ],
            }
        }
    )

    slots = client.consumption("1200000000000", "19L0000000", T0, T1)

    assert len(slots) == 2
    assert slots[0].interval_start == T0
    assert slots[1].consumption == pytest.approx(0.19)
    params = requests_seen[0].url.params
    assert params["order_by"] == "period"
    assert params["period_from"] == T0.isoformat()
    assert params["period_to"] == T1.isoformat()


def test_http_error_raises_octopus_error(make_client):
    with pytest.raises(octopus.OctopusError, match="HTTP 404"):
        make_client({}).electricity_meter_point("0000")


def test_transport_error_raises_octopus_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = octopus.OctopusClient("key", transport=httpx.MockTransport(handler))
    with pytest.raises(octopus.OctopusError, match="connection refused"):
        client.products()


def test_parse_product():
    product = octopus.parse_product(PRODUCT_DOC, region="_A")

    assert product.code == "VAR-19-04-12"
    assert product.display_name == "Flexible Octopus"
    assert product.is_variable
    assert product.available_from == datetime(2019, 4, 11, 23, tzinfo=timezone.utc)
    assert product.available_to is None
    assert set(product.tariffs) == {"_A", "_B"}

    sr, dr = product.regional_tariffs()
    assert sr.tariff_type is TariffType.SINGLE_REGISTER_ELECTRICITY
    assert sr.standard_unit_rate_inc_vat == 15.96
    assert dr.tariff_type is TariffType.DUAL_REGISTER_ELECTRICITY
    assert dr.night_unit_rate_inc_vat == 8.4
    assert not sr.has_rate_history


def test_product_fetches_rate_history_for_region_only(make_client, requests_seen):
    prefix = "/v1/products/VAR-19-04-12/electricity-tariffs/"
    client = make_client(
        {
            "/v1/products/VAR-19-04-12/": PRODUCT_DOC,
            prefix + "E-1R-VAR-19-04-12-A/standing-charges/": rates_page(21.0),
            prefix + "E-1R-VAR-19-04-12-A/standard-unit-rates/": rates_page(16.5, 15.96),
            prefix + "E-2R-VAR-19-04-12-A/standing-charges/": rates_page(21.0),
            prefix + "E-2R-VAR-19-04-12-A/day-unit-rates/": rates_page(17.1),
            prefix + "E-2R-VAR-19-04-12-A/night-unit-rates/": rates_page(8.4),
        }
    )

    product = client.product("VAR-19-04-12", "_A", T0, T0, T1)

    sr, dr = product.tariffs["_A"]
    assert [w.value_inc_vat for w in sr.standard_unit_rates] == [16.5, 15.96]
    assert [w.value_inc_vat for w in sr.standing_charges] == [21.0]
    assert sr.day_unit_rates is None
    assert [w.value_inc_vat for w in dr.day_unit_rates] == [17.1]
    assert [w.value_inc_vat for w in dr.night_unit_rates] == [8.4]
    assert not product.tariffs["_B"][0].has_rate_history

    rate_requests = [r for r in requests_seen if "standing-charges" in r.url.path]
    assert all(r.url.params["period_from"] == T0.isoformat() for r in rate_requests)
    assert requests_seen[0].url.params["tariffs_active_at"] == T0.isoformat()


def test_product_without_period_skips_rate_history(make_client, requests_seen):
    client = make_client({"/v1/products/VAR-19-04-12/": PRODUCT_DOC})

    product = client.product("VAR-19-04-12", "_A")

    assert len(requests_seen) == 1
    assert not product.tariffs["_A"][0].has_rate_history


def test_filter_products():
    products = [
        {"code": "AGILE", "display_name": "Agile Octopus", "brand": "OCTOPUS_ENERGY", "direction": "IMPORT"},
        {"code": "OUT", "display_name": "Agile Outgoing", "brand": "OCTOPUS_ENERGY", "direction": "EXPORT"},
        {"code": "GO", "display_name": "Octopus Go", "brand": "OCTOPUS_ENERGY", "direction": "IMPORT"},
        {"code": "M-AND-S", "display_name": "Agile M&S", "brand": "M_AND_S", "direction": "IMPORT"},
    ]

    assert [p["code"] for p in octopus.filter_products(products)] == ["AGILE", "GO", "M-AND-S"]
    assert [p["code"] for p in octopus.filter_products(products, match="Agile")] == ["AGILE", "M-AND-S"]
    assert [p["code"] for p in octopus.filter_products(products, brand="^OCTOPUS")] == ["AGILE", "GO"]
    assert [p["code"] for p in octopus.filter_products(products, match="Agile", export=True)] == ["OUT"]
