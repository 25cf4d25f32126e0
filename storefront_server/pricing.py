"""Price resolution for cart lines.

Prices are never stored on cart items. A line is priced at read time from the
current product, or from its variant when one is selected; the two sources are
never blended.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Protocol

from .errors import PricingError, StaleLineError, ValidationError
from .models import CartItem, LineItem, PricedLine, Product, ProductLine, ProductVariant, VariantLine

CENTS = Decimal("0.01")


class ProductLookup(Protocol):
    """Anything that can find a product by ID (see aggregator.Catalog)."""

    def get_product(self, product_id: str) -> Optional[Product]:
        ...


def quantize_money(amount: Decimal) -> Decimal:
    """Round to cents, half up. Display only, never while accumulating."""
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def _effective_price(price: Optional[Decimal], sale_price: Optional[Decimal], owner: str) -> Decimal:
    if price is None or not price.is_finite() or price < 0:
        raise PricingError(f"No valid price for {owner}")
    if sale_price is not None and sale_price.is_finite() and Decimal("0") <= sale_price < price:
        return sale_price
    return price


def resolve_unit_price(product: Product, variant: Optional[ProductVariant] = None) -> Decimal:
    """
    Resolve the unit price for a product, or for one of its variants.

    Args:
        product: Current product data
        variant: Selected variant; when given, the product's own prices are ignored

    Returns:
        Sale price if present and below the base price, else base price

    Raises:
        PricingError: If the relevant base price is missing or malformed
    """
    if variant is not None:
        return _effective_price(variant.price, variant.sale_price, f"variant {variant.id}")
    return _effective_price(product.price, product.sale_price, f"product {product.id}")


def resolve_line_total(product: Product, variant: Optional[ProductVariant], quantity: int) -> Decimal:
    """Unit price times quantity, in Decimal."""
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValidationError(f"Quantity must be a positive integer, got {quantity!r}")
    return resolve_unit_price(product, variant) * quantity


def build_line(item: CartItem, lookup: ProductLookup) -> LineItem:
    """
    Pair a cart item with the current catalog data it references.

    Raises:
        StaleLineError: If the product or variant is missing, inactive, or mismatched
    """
    product = lookup.get_product(item.product_id)
    if product is None:
        raise StaleLineError(f"Product {item.product_id} not found")
    if not product.is_active:
        raise StaleLineError(f"Product {item.product_id} is inactive")

    if item.variant_id is None:
        return ProductLine(item_id=item.id, product=product, quantity=item.quantity)

    variant = product.get_variant(item.variant_id)
    if variant is None:
        raise StaleLineError(f"Variant {item.variant_id} not found for product {product.id}")
    if variant.product_id is not None and variant.product_id != product.id:
        raise StaleLineError(f"Variant {variant.id} belongs to product {variant.product_id}")
    if not variant.is_active:
        raise StaleLineError(f"Variant {variant.id} is inactive")
    return VariantLine(item_id=item.id, product=product, variant=variant, quantity=item.quantity)


def price_line(line: LineItem) -> PricedLine:
    """Price a resolved line."""
    if isinstance(line, VariantLine):
        unit_price = resolve_unit_price(line.product, line.variant)
        return PricedLine(
            item_id=line.item_id,
            product_id=line.product.id,
            variant_id=line.variant.id,
            name=f"{line.product.name} ({line.variant.label})",
            quantity=line.quantity,
            unit_price=unit_price,
            line_total=unit_price * line.quantity,
        )
    if isinstance(line, ProductLine):
        unit_price = resolve_unit_price(line.product)
        return PricedLine(
            item_id=line.item_id,
            product_id=line.product.id,
            name=line.product.name,
            quantity=line.quantity,
            unit_price=unit_price,
            line_total=unit_price * line.quantity,
        )
    raise TypeError(f"Unknown line type: {type(line).__name__}")
