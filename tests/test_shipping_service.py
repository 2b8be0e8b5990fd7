import pytest

from storefront.errors import ValidationError
from storefront.services.shipping_service import (
    DEFAULT_RATE_ID,
    rate_applies,
    resolve_rate,
    select_rates,
)
from storefront.model import ShippingRate


def test_fallback_when_no_rates(app):
    rates = select_rates(0)
    assert len(rates) == 1
    fallback = rates[0]
    assert fallback["id"] == DEFAULT_RATE_ID
    assert fallback["price_cents"] == 599
    assert fallback["estimated_days_min"] == 5
    assert fallback["estimated_days_max"] == 7


def test_fallback_uses_config(app):
    app.config["DEFAULT_SHIPPING_CENTS"] = 899
    assert select_rates(100)[0]["price_cents"] == 899


def test_free_shipping_band(make_rate):
    make_rate("Standard", 599, 0, 7499)
    free = make_rate("Free", 0, 7500, None)

    rates = select_rates(8000)
    assert [r["price_cents"] for r in rates] == [0]
    assert rates[0]["id"] == free.id


def test_band_edges_are_inclusive(make_rate):
    make_rate("Standard", 599, 0, 7499)
    make_rate("Free", 0, 7500, None)
    assert [r["price_cents"] for r in select_rates(7499)] == [599]
    assert [r["price_cents"] for r in select_rates(7500)] == [0]


def test_overlapping_bands_sorted_by_price(make_rate):
    make_rate("Express", 1499)
    make_rate("Standard", 599, 0, None)
    make_rate("Overnight", 2999)
    assert [r["name"] for r in select_rates(1000)] == ["Standard", "Express", "Overnight"]


def test_inactive_rates_are_skipped(make_rate):
    make_rate("Hidden", 100, is_active=False)
    rates = select_rates(1000)
    assert [r["id"] for r in rates] == [DEFAULT_RATE_ID]


def test_no_band_match_falls_back(make_rate):
    make_rate("Big orders", 0, 10000, None)
    assert select_rates(500)[0]["id"] == DEFAULT_RATE_ID


def test_rate_applies_unbounded():
    r = ShippingRate(name="Any", rate_cents=0, min_order_cents=None, max_order_cents=None)
    assert rate_applies(r, 0)
    assert rate_applies(r, 10**9)


class TestResolveRate:
    def test_cheapest_by_default(self, make_rate):
        make_rate("Express", 1499)
        make_rate("Standard", 599)
        assert resolve_rate(None, 1000)["name"] == "Standard"

    def test_by_id(self, make_rate):
        express = make_rate("Express", 1499)
        make_rate("Standard", 599)
        assert resolve_rate(str(express.id), 1000)["price_cents"] == 1499

    def test_fallback_id(self, app):
        assert resolve_rate(DEFAULT_RATE_ID, 1000)["price_cents"] == 599

    def test_rate_outside_band_rejected(self, make_rate):
        free = make_rate("Free", 0, 7500, None)
        make_rate("Standard", 599, 0, 7499)
        with pytest.raises(ValidationError):
            resolve_rate(free.id, 1000)
