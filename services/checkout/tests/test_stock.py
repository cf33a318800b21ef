from datetime import datetime
from decimal import Decimal

from packages.shared.schemas.catalog_v1 import ProductV1
from services.checkout.app.services.checkout_base import CartLine
from services.checkout.app.services.stock import UNLIMITED, StockManager, reset_daily_stock


def _product(product_id: str = "A", **overrides) -> ProductV1:
    data = {"id": product_id, "name": f"Product {product_id}", "price": Decimal("5.00")}
    data.update(overrides)
    return ProductV1(**data)


def test_limited_product_checks_against_current_stock() -> None:
    stock = StockManager.from_products([_product(daily_stock=3, current_stock=1)])

    assert stock.get_available_stock("A") == 1
    assert stock.check_availability("A", 1) is True
    assert stock.check_availability("A", 2) is False
    assert stock.is_limited("A") is True


def test_product_without_daily_stock_is_unlimited() -> None:
    stock = StockManager.from_products([_product()])

    assert stock.get_available_stock("A") == UNLIMITED
    assert stock.check_availability("A", 10_000) is True
    assert stock.is_limited("A") is False

    stock.reduce_stock("A", 50)
    assert stock.get_available_stock("A") == UNLIMITED
    assert stock.snapshot() == {"A": None}


def test_zero_daily_stock_is_sold_out_not_unlimited() -> None:
    stock = StockManager.from_products([_product(daily_stock=0)])

    assert stock.get_available_stock("A") == 0
    assert stock.check_availability("A", 1) is False


def test_missing_current_stock_starts_at_daily_quota() -> None:
    stock = StockManager.from_products([_product(daily_stock=4)])

    assert stock.get_available_stock("A") == 4


def test_out_of_range_current_stock_is_clamped() -> None:
    stock = StockManager.from_products(
        [
            _product("A", daily_stock=3, current_stock=9),
            _product("B", daily_stock=3, current_stock=-2),
        ]
    )

    assert stock.get_available_stock("A") == 3
    assert stock.get_available_stock("B") == 0


def test_unknown_product_has_no_stock() -> None:
    stock = StockManager.from_products([_product()])

    assert stock.get_available_stock("missing") == 0
    assert stock.check_availability("missing", 1) is False

    stock.reduce_stock("missing", 1)
    assert "missing" not in stock.snapshot()


def test_reduce_stock_floors_at_zero() -> None:
    stock = StockManager.from_products([_product(daily_stock=5, current_stock=2)])

    stock.reduce_stock("A", 1)
    assert stock.get_available_stock("A") == 1

    stock.reduce_stock("A", 4)
    assert stock.get_available_stock("A") == 0

    stock.reduce_stock("A", 0)
    assert stock.snapshot() == {"A": 0}


def test_shortages_sum_quantities_across_lines() -> None:
    a = _product("A", daily_stock=3, current_stock=3)
    b = _product("B")
    stock = StockManager.from_products([a, b])

    lines = [
        CartLine(product=a, quantity=2),
        CartLine(product=b, quantity=40),
        CartLine(product=a, quantity=2),
    ]
    shortages = stock.shortages(lines)

    assert len(shortages) == 1
    assert shortages[0].product_id == "A"
    assert shortages[0].product_name == "Product A"
    assert shortages[0].requested == 4
    assert shortages[0].available == 3


def test_reset_daily_stock_refills_stale_products_only() -> None:
    now = datetime(2026, 10, 19, 9, 0)
    fresh = _product(
        "A", daily_stock=5, current_stock=1, stock_last_reset=datetime(2026, 10, 19, 0, 5)
    )
    stale = _product(
        "B", daily_stock=5, current_stock=1, stock_last_reset=datetime(2026, 10, 18, 23, 0)
    )
    never = _product("C", daily_stock=2, current_stock=0)
    unlimited = _product("D")

    out = reset_daily_stock([fresh, stale, never, unlimited], now)

    assert out[0] is fresh
    assert out[1].current_stock == 5
    assert out[1].stock_last_reset == now
    assert out[2].current_stock == 2
    assert out[3] is unlimited
    # Inputs are left untouched.
    assert stale.current_stock == 1
