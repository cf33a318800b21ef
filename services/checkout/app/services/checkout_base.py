from __future__ import annotations

from dataclasses import asdict, dataclass, field

from packages.shared.schemas.catalog_v1 import AddonItemV1, ProductV1


class CheckoutError(Exception):
    """Base class for checkout errors."""


class SessionNotFoundError(CheckoutError):
    def __init__(self, session_id: str) -> None:
        super().__init__(f"Checkout session not found: {session_id}")
        self.session_id = session_id


class StoreNotFoundError(CheckoutError):
    def __init__(self, store_id: str) -> None:
        super().__init__(f"Store not found: {store_id}")
        self.store_id = store_id


class ProductNotFoundError(CheckoutError):
    def __init__(self, product_id: str) -> None:
        super().__init__(f"Product not found: {product_id}")
        self.product_id = product_id


class ProductUnavailableError(CheckoutError):
    def __init__(self, product_id: str) -> None:
        super().__init__(f"Product is not available for sale: {product_id}")
        self.product_id = product_id


class OrderNotFoundError(CheckoutError):
    def __init__(self, order_id: str) -> None:
        super().__init__(f"Order not found: {order_id}")
        self.order_id = order_id


class PaymentStateError(CheckoutError):
    def __init__(self, order_id: str, status: str) -> None:
        super().__init__(f"Order {order_id} is not awaiting payment (status={status})")
        self.order_id = order_id
        self.status = status


class AddonSelectionError(CheckoutError):
    def __init__(self, category_id: str, item_id: str) -> None:
        super().__init__(
            f"Add-on {item_id!r} cannot be selected in category {category_id!r}. "
            "It is unknown, unavailable, or the category is already full."
        )
        self.category_id = category_id
        self.item_id = item_id


class OrderValidationError(CheckoutError):
    def __init__(self, failures: list[ValidationFailure]) -> None:
        super().__init__("Order is not valid: " + "; ".join(f.message for f in failures))
        self.failures = failures


@dataclass(frozen=True, slots=True)
class ValidationFailure:
    field: str
    message: str
    # input | availability | schedule
    kind: str = "input"
    product_id: str | None = None
    available: int | None = None

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class SelectedAddon:
    item: AddonItemV1
    category_id: str
    quantity: int = 1


@dataclass(slots=True)
class CartLine:
    product: ProductV1
    quantity: int
    addons: list[SelectedAddon] = field(default_factory=list)
    notes: str | None = None
