from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from packages.shared.schemas.catalog_v1 import ProductV1
from packages.shared.schemas.order_v1 import FulfillmentTypeV1
from services.checkout.app.services.checkout_base import CartLine, SelectedAddon

logger = logging.getLogger(__name__)

_CENTS = Decimal("0.01")


def to_money(value: Decimal) -> Decimal:
    """Round to cents for presentation. Never call this while accumulating."""

    return Decimal(value).quantize(_CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True, slots=True)
class FlatPricing:
    unit_price: Decimal

    def base_cost(self, quantity: int) -> Decimal:
        return self.unit_price * quantity


@dataclass(frozen=True, slots=True)
class TieredPricing:
    unit_price: Decimal
    included_quantity: int
    excess_unit_price: Decimal

    def base_cost(self, quantity: int) -> Decimal:
        included = min(quantity, self.included_quantity)
        excess = max(0, quantity - self.included_quantity)
        return included * self.unit_price + excess * self.excess_unit_price


PricingModel = FlatPricing | TieredPricing


@dataclass(frozen=True, slots=True)
class LineTotal:
    unit_price: Decimal
    base_total: Decimal
    addons_total: Decimal
    line_total: Decimal


@dataclass(frozen=True, slots=True)
class OrderTotals:
    subtotal: Decimal
    delivery_fee: Decimal
    total: Decimal


def effective_unit_price(product: ProductV1) -> Decimal:
    if product.sale_price is not None and product.sale_price > 0:
        return product.sale_price
    return product.price


def pricing_model(product: ProductV1) -> PricingModel:
    """Resolve the product record into a flat or tiered pricing model.

    A threshold without an excess price (or a non-positive threshold) is a catalog defect;
    such products are priced flat so a bad row never blocks checkout.
    """

    unit_price = effective_unit_price(product)
    threshold = product.max_included_quantity

    if threshold is None:
        if product.excess_unit_price is not None:
            logger.warning(
                "Product %s has excess_unit_price without max_included_quantity; pricing flat",
                product.id,
            )
        return FlatPricing(unit_price=unit_price)

    if threshold <= 0 or product.excess_unit_price is None:
        logger.warning(
            "Product %s has incomplete tiered pricing (max_included_quantity=%r, "
            "excess_unit_price=%r); pricing flat",
            product.id,
            threshold,
            product.excess_unit_price,
        )
        return FlatPricing(unit_price=unit_price)

    return TieredPricing(
        unit_price=unit_price,
        included_quantity=threshold,
        excess_unit_price=product.excess_unit_price,
    )


def addons_cost(addons: Iterable[SelectedAddon]) -> Decimal:
    return sum((a.item.price * max(1, a.quantity) for a in addons), Decimal("0"))


def calculate_line_total(
    product: ProductV1, quantity: int, addons: Iterable[SelectedAddon] = ()
) -> LineTotal:
    """Price one cart line.

    Add-ons are charged once per line, not once per unit. `quantity` is assumed to be a
    positive integer already validated by the caller.
    """

    model = pricing_model(product)
    base_total = model.base_cost(quantity)
    addons_total = addons_cost(addons)
    return LineTotal(
        unit_price=model.unit_price,
        base_total=base_total,
        addons_total=addons_total,
        line_total=base_total + addons_total,
    )


def calculate_order_total(
    lines: Iterable[CartLine],
    delivery_fee: Decimal,
    fulfillment_type: FulfillmentTypeV1 = FulfillmentTypeV1.DELIVERY,
) -> OrderTotals:
    subtotal = sum(
        (calculate_line_total(ln.product, ln.quantity, ln.addons).line_total for ln in lines),
        Decimal("0"),
    )
    fee = Decimal(delivery_fee) if fulfillment_type == FulfillmentTypeV1.DELIVERY else Decimal("0")
    return OrderTotals(subtotal=subtotal, delivery_fee=fee, total=subtotal + fee)
