from decimal import Decimal

from packages.shared.schemas.catalog_v1 import AddonItemV1, ProductV1
from packages.shared.schemas.order_v1 import FulfillmentTypeV1
from services.checkout.app.services.checkout_base import CartLine, SelectedAddon
from services.checkout.app.services.pricing import (
    FlatPricing,
    TieredPricing,
    calculate_line_total,
    calculate_order_total,
    pricing_model,
    to_money,
)


def _product(**overrides) -> ProductV1:
    data = {"id": "p-1", "name": "Cake slice", "price": Decimal("10.00")}
    data.update(overrides)
    return ProductV1(**data)


def _addon(price: str, quantity: int = 1) -> SelectedAddon:
    return SelectedAddon(
        item=AddonItemV1(id=f"a-{price}", name="Topping", price=Decimal(price)),
        category_id="c-1",
        quantity=quantity,
    )


def test_flat_price_multiplies_by_quantity() -> None:
    line = calculate_line_total(_product(), 3)

    assert line.unit_price == Decimal("10.00")
    assert line.base_total == Decimal("30.00")
    assert line.addons_total == Decimal("0")
    assert line.line_total == Decimal("30.00")


def test_tiered_price_bills_excess_units_at_excess_price() -> None:
    product = _product(max_included_quantity=2, excess_unit_price=Decimal("4.00"))

    assert isinstance(pricing_model(product), TieredPricing)
    assert calculate_line_total(product, 5).line_total == Decimal("32.00")
    assert calculate_line_total(product, 2).line_total == Decimal("20.00")
    assert calculate_line_total(product, 1).line_total == Decimal("10.00")


def test_sale_price_replaces_base_price_when_positive() -> None:
    assert calculate_line_total(_product(sale_price=Decimal("7.50")), 2).line_total == Decimal(
        "15.00"
    )
    assert calculate_line_total(_product(sale_price=Decimal("0")), 2).line_total == Decimal(
        "20.00"
    )


def test_sale_price_applies_to_included_units_only() -> None:
    product = _product(
        sale_price=Decimal("8.00"),
        max_included_quantity=1,
        excess_unit_price=Decimal("5.00"),
    )

    assert calculate_line_total(product, 3).line_total == Decimal("18.00")


def test_incomplete_tier_config_prices_flat() -> None:
    assert isinstance(pricing_model(_product(max_included_quantity=2)), FlatPricing)
    assert isinstance(
        pricing_model(_product(max_included_quantity=0, excess_unit_price=Decimal("1"))),
        FlatPricing,
    )
    assert isinstance(pricing_model(_product(excess_unit_price=Decimal("1"))), FlatPricing)

    assert calculate_line_total(_product(max_included_quantity=2), 4).line_total == Decimal(
        "40.00"
    )


def test_addons_are_charged_once_per_line() -> None:
    line = calculate_line_total(_product(), 3, [_addon("2.00"), _addon("1.50", quantity=2)])

    assert line.base_total == Decimal("30.00")
    assert line.addons_total == Decimal("5.00")
    assert line.line_total == Decimal("35.00")


def test_order_total_adds_delivery_fee_only_for_delivery() -> None:
    lines = [
        CartLine(product=_product(), quantity=2),
        CartLine(product=_product(id="p-2", price=Decimal("3.33")), quantity=1),
    ]

    delivery = calculate_order_total(lines, Decimal("5.00"), FulfillmentTypeV1.DELIVERY)
    assert delivery.subtotal == Decimal("23.33")
    assert delivery.delivery_fee == Decimal("5.00")
    assert delivery.total == Decimal("28.33")

    pickup = calculate_order_total(lines, Decimal("5.00"), FulfillmentTypeV1.PICKUP)
    assert pickup.delivery_fee == Decimal("0")
    assert pickup.total == pickup.subtotal


def test_empty_cart_totals_zero() -> None:
    totals = calculate_order_total([], Decimal("5.00"), FulfillmentTypeV1.PICKUP)

    assert totals.subtotal == Decimal("0")
    assert totals.total == Decimal("0")


def test_to_money_rounds_half_up() -> None:
    assert to_money(Decimal("1.005")) == Decimal("1.01")
    assert to_money(Decimal("2.3449")) == Decimal("2.34")
    assert str(to_money(Decimal("32"))) == "32.00"
