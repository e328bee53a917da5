"""
Tests for `app/modules/sales/pricing.py`.

Price lookups fill missing prices; a failed lookup contributes 0 and
never raises.
"""

from __future__ import annotations

from decimal import Decimal

from app.core.exceptions import InventoryServiceError
from app.modules.sales.normalizer import NormalizedItem
from app.modules.sales.pricing import SalePricer, compute_total


def test_total_is_sum_of_quantity_times_price() -> None:
    items = [NormalizedItem("A", 2, Decimal("10")), NormalizedItem("B", 1, Decimal("5"))]

    assert compute_total(items) == Decimal("25")


def test_missing_price_contributes_zero() -> None:
    items = [NormalizedItem("A", 2, Decimal("10")), NormalizedItem("B", 3)]

    assert compute_total(items) == Decimal("20")


def test_fill_prices_fetches_only_missing_prices(inventory) -> None:
    pricer = SalePricer(inventory)

    priced = pricer.fill_prices([
        NormalizedItem("P1", 2),
        NormalizedItem("P2", 1, Decimal("7")),
        NormalizedItem("P3", 1, Decimal("0")),
    ])

    assert inventory.lookups == ["P1", "P3"]
    assert [item.unit_price for item in priced] == [Decimal("10"), Decimal("7"), Decimal("2.50")]
    assert priced[0].product_name == "Producto P1"
    assert compute_total(priced) == Decimal("29.50")


def test_failed_lookup_soft_fails_to_zero(inventory) -> None:
    pricer = SalePricer(inventory)

    priced = pricer.fill_prices([NormalizedItem("UNKNOWN", 4), NormalizedItem("P2", 2)])

    assert priced[0].unit_price == Decimal("0")
    assert compute_total(priced) == Decimal("10")


def test_service_errors_also_soft_fail(inventory) -> None:
    def broken(product_id):
        raise InventoryServiceError("caído", status_code=503)

    inventory.get_product = broken
    priced = SalePricer(inventory).fill_prices([NormalizedItem("P1", 1)])

    assert priced[0].unit_price == Decimal("0")


def test_cached_price_is_reused_before_fetching(inventory) -> None:
    cached = {"P1": NormalizedItem("P1", 5, Decimal("8"), "Tenis viejo")}

    priced = SalePricer(inventory).fill_prices([NormalizedItem("P1", 1)], cached=cached)

    assert inventory.lookups == []
    assert priced[0].unit_price == Decimal("8")
    assert priced[0].product_name == "Tenis viejo"
