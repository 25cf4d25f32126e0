"""Data models for storefront catalog and cart entities."""

from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _parse_price(value: Any) -> Optional[Decimal]:
    """Parse a wire price into a finite Decimal, or None if it can't be read."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        parsed = value
    else:
        try:
            parsed = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return None
    if not parsed.is_finite():
        return None
    return parsed


class ApiModel(BaseModel):
    """Base for models read from the storefront API (camelCase on the wire)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)


class ProductVariant(ApiModel):
    """A purchasable sub-configuration of a product (size, flavor...)."""

    id: str = Field(description="Variant ID")
    product_id: Optional[str] = Field(None, alias="productId", description="Parent product ID")
    size: Optional[str] = Field(None, description="Size, e.g. '500' or '2.5'")
    unit: Optional[str] = Field(None, description="Unit, e.g. 'gm', 'kg', 'lbs'")
    flavor: Optional[str] = Field(None, description="Flavor, None for unflavored")
    price: Optional[Decimal] = Field(None, description="Variant price")
    sale_price: Optional[Decimal] = Field(None, alias="salePrice", description="Variant promotional price")
    sku: Optional[str] = None
    stock: Optional[int] = None
    is_active: bool = Field(default=True, alias="isActive")

    @field_validator("price", "sale_price", mode="before")
    @classmethod
    def _normalize_prices(cls, value: Any) -> Optional[Decimal]:
        return _parse_price(value)

    @property
    def label(self) -> str:
        parts = [p for p in (self.size, self.unit) if p]
        label = " ".join(parts)
        if self.flavor:
            label = f"{label} • {self.flavor}" if label else self.flavor
        return label or self.id


class Product(ApiModel):
    """Represents a catalog product. The cart only ever reads it."""

    id: str = Field(description="Product ID")
    name: str = Field(default="", description="Display name")
    slug: Optional[str] = None
    price: Optional[Decimal] = Field(None, description="Base price")
    sale_price: Optional[Decimal] = Field(None, alias="salePrice", description="Promotional price if active")
    sku: Optional[str] = None
    stock: Optional[int] = None
    images: list[str] = Field(default_factory=list, description="Image URLs")
    variants: list[ProductVariant] = Field(default_factory=list, description="Product variants")
    is_active: bool = Field(default=True, alias="isActive")

    @field_validator("price", "sale_price", mode="before")
    @classmethod
    def _normalize_prices(cls, value: Any) -> Optional[Decimal]:
        return _parse_price(value)

    @field_validator("images", "variants", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    def get_variant(self, variant_id: str) -> Optional[ProductVariant]:
        for variant in self.variants:
            if variant.id == variant_id:
                return variant
        return None


class CartItem(ApiModel):
    """A cart line as stored remotely. Carries no price."""

    id: str = Field(description="Cart item ID, assigned by the remote store")
    product_id: str = Field(alias="productId", description="Referenced product ID")
    variant_id: Optional[str] = Field(None, alias="variantId", description="Referenced variant ID")
    quantity: int = Field(ge=1, description="Quantity, never below 1")


class ProductLine(BaseModel):
    """A cart line priced from its product."""

    kind: Literal["product"] = "product"
    item_id: str
    product: Product
    quantity: int = Field(ge=1)


class VariantLine(BaseModel):
    """A cart line priced from a variant; the parent product's price is ignored."""

    kind: Literal["variant"] = "variant"
    item_id: str
    product: Product
    variant: ProductVariant
    quantity: int = Field(ge=1)


LineItem = Annotated[Union[ProductLine, VariantLine], Field(discriminator="kind")]


class CartStatus(str, Enum):
    """Cart store status flag."""

    IDLE = "idle"
    LOADING = "loading"
    ERROR = "error"


class PricedLine(BaseModel):
    """A resolved cart line."""

    item_id: str
    product_id: str
    variant_id: Optional[str] = None
    name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class StaleLine(BaseModel):
    """A cart line whose product or variant could not be resolved."""

    item_id: str
    product_id: str
    variant_id: Optional[str] = None
    quantity: int
    reason: str


class CartTotal(BaseModel):
    """Cart-wide total over resolvable lines."""

    subtotal: Decimal = Field(default=Decimal("0"))
    lines: list[PricedLine] = Field(default_factory=list)
    stale: list[StaleLine] = Field(default_factory=list)

    @property
    def has_stale(self) -> bool:
        return bool(self.stale)


class OrderSummary(BaseModel):
    """Cart figures shown before checkout."""

    item_count: int = 0
    subtotal: Decimal = Field(default=Decimal("0.00"))
    shipping: Decimal = Field(default=Decimal("0.00"))
    tax: Decimal = Field(default=Decimal("0.00"))
    total: Decimal = Field(default=Decimal("0.00"))
    free_shipping: bool = False
    amount_to_free_shipping: Decimal = Field(default=Decimal("0.00"))
    lines: list[PricedLine] = Field(default_factory=list)
    stale: list[StaleLine] = Field(default_factory=list)


class AuthCredentials(BaseModel):
    """Authentication credentials."""

    email: str
    password: str


class SessionData(BaseModel):
    """Session data for an authenticated user."""

    token: Optional[str] = Field(None, description="Bearer token")
    user_id: Optional[str] = Field(None, description="User ID")
    user_email: Optional[str] = Field(None, description="User email")
