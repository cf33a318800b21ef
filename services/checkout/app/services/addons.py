from __future__ import annotations

from collections.abc import Iterable

from packages.shared.schemas.catalog_v1 import AddonCategoryV1, ProductV1
from services.checkout.app.services.checkout_base import SelectedAddon, ValidationFailure


class AddonSelection:
    """Add-on picks for one cart line, keyed by category.

    Bounds are enforced on insert: a single-select category holds one item (a new pick
    replaces the old one) and a multi-select category never holds more than `max_select`
    distinct items.
    """

    def __init__(self, categories: Iterable[AddonCategoryV1]) -> None:
        self._categories = {c.id: c for c in categories}
        self._picks: dict[str, list[SelectedAddon]] = {}

    @classmethod
    def for_product(cls, product: ProductV1) -> AddonSelection:
        return cls(product.addon_categories)

    def select(self, category_id: str, item_id: str, quantity: int = 1) -> bool:
        category = self._categories.get(category_id)
        if category is None or quantity < 1:
            return False

        item = category.item(item_id)
        if item is None or not item.is_available:
            return False

        picks = self._picks.setdefault(category_id, [])
        if not category.is_multiple:
            picks[:] = [SelectedAddon(item=item, category_id=category_id, quantity=1)]
            return True

        for i, pick in enumerate(picks):
            if pick.item.id == item_id:
                picks[i] = SelectedAddon(item=item, category_id=category_id, quantity=quantity)
                return True

        if len(picks) >= category.max_select:
            return False

        picks.append(SelectedAddon(item=item, category_id=category_id, quantity=quantity))
        return True

    def deselect(self, category_id: str, item_id: str) -> None:
        picks = self._picks.get(category_id)
        if picks:
            picks[:] = [p for p in picks if p.item.id != item_id]

    def selected(self) -> list[SelectedAddon]:
        ordered = sorted(self._categories.values(), key=lambda c: (c.sort_order, c.name))
        return [pick for c in ordered for pick in self._picks.get(c.id, [])]

    def validate(self) -> list[ValidationFailure]:
        return validate_addons(self._categories.values(), self.selected())


def validate_addons(
    categories: Iterable[AddonCategoryV1], addons: Iterable[SelectedAddon]
) -> list[ValidationFailure]:
    """Check per-category selection bounds for one line."""

    by_id = {c.id: c for c in categories}
    counts: dict[str, int] = {}
    failures: list[ValidationFailure] = []

    for addon in addons:
        category = by_id.get(addon.category_id)
        if category is None or category.item(addon.item.id) is None:
            failures.append(
                ValidationFailure(
                    field=f"addons.{addon.category_id}",
                    message=f"Add-on {addon.item.name} does not belong to this product",
                )
            )
            continue
        counts[category.id] = counts.get(category.id, 0) + 1

    for category in sorted(by_id.values(), key=lambda c: (c.sort_order, c.name)):
        count = counts.get(category.id, 0)
        minimum = max(category.min_select, 1) if category.is_required else category.min_select
        maximum = category.max_select if category.is_multiple else 1

        # An optional category only enforces its minimum once something is picked.
        if count < minimum and (category.is_required or count):
            failures.append(
                ValidationFailure(
                    field=f"addons.{category.id}",
                    message=f"Select at least {minimum} option(s) in {category.name}",
                )
            )
        elif count > maximum:
            failures.append(
                ValidationFailure(
                    field=f"addons.{category.id}",
                    message=f"Select at most {maximum} option(s) in {category.name}",
                )
            )

    return failures
