"""Cart-wide figures derived from the store and the catalog."""

import logging
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from .errors import PricingError
from .models import CartItem, CartTotal, OrderSummary, Product, StaleLine
from .pricing import build_line, price_line, quantize_money

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class Catalog:
    """Product and variant lookup keyed by ID."""

    def __init__(self, products: Iterable[Product] = ()) -> None:
        self._products: dict[str, Product] = {}
        for product in products:
            self._products[product.id] = product

    def products(self) -> list[Product]:
        return list(self._products.values())

    def get_product(self, product_id: str) -> Optional[Product]:
        return self._products.get(product_id)


def item_count(snapshot: Sequence[CartItem]) -> int:
    """Total number of units in the cart, not the number of lines."""
    return sum(item.quantity for item in snapshot)


def cart_total(snapshot: Sequence[CartItem], lookup: Catalog) -> CartTotal:
    """
    Sum line totals over every line that can be priced.

    Lines whose product or variant can't be resolved are left out of the
    subtotal and reported in ``stale`` so callers can warn about them.
    """
    result = CartTotal(subtotal=ZERO)
    for item in snapshot:
        try:
            priced = price_line(build_line(item, lookup))
        except PricingError as e:
            logger.info(f"Stale cart line {item.id}: {e}")
            result.stale.append(
                StaleLine(
                    item_id=item.id,
                    product_id=item.product_id,
                    variant_id=item.variant_id,
                    quantity=item.quantity,
                    reason=e.message,
                )
            )
            continue
        result.lines.append(priced)
        result.subtotal += priced.line_total
    return result


def shipping_eligible(total: Decimal, free_threshold: Decimal) -> bool:
    """Whether the total qualifies for free shipping."""
    return total >= free_threshold


def order_summary(
    snapshot: Sequence[CartItem],
    lookup: Catalog,
    free_threshold: Decimal = Decimal("50.00"),
    shipping_fee: Decimal = Decimal("9.99"),
    tax_rate: Decimal = ZERO,
) -> OrderSummary:
    """Subtotal, shipping, tax and grand total for the cart page."""
    totals = cart_total(snapshot, lookup)
    subtotal = totals.subtotal
    # An empty (or fully stale) cart ships nothing.
    free = shipping_eligible(subtotal, free_threshold) or not totals.lines
    shipping = ZERO if free else shipping_fee
    tax = subtotal * tax_rate

    return OrderSummary(
        item_count=item_count(snapshot),
        subtotal=quantize_money(subtotal),
        shipping=quantize_money(shipping),
        tax=quantize_money(tax),
        total=quantize_money(subtotal + shipping + tax),
        free_shipping=free,
        amount_to_free_shipping=quantize_money(max(free_threshold - subtotal, ZERO)),
        lines=totals.lines,
        stale=totals.stale,
    )
