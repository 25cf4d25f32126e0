"""Cart mutations against the storefront API."""

import logging
from typing import Any, Optional, Protocol

from .errors import AuthRequired, ValidationError
from .models import CartItem
from .store import CartStore

logger = logging.getLogger(__name__)


class Session(Protocol):
    """Read-only view of the current session (AuthManager satisfies it)."""

    def is_authenticated(self) -> bool:
        ...


class CartRemote(Protocol):
    """Remote cart resource (StorefrontClient satisfies it)."""

    async def add_cart_item(self, product_id: str, quantity: int = 1, variant_id: Optional[str] = None) -> CartItem:
        ...

    async def update_cart_item(self, item_id: str, quantity: int) -> CartItem:
        ...

    async def delete_cart_item(self, item_id: str) -> None:
        ...


def clamp_quantity(quantity: int) -> int:
    """Clamp a requested quantity to the minimum of 1. Removal is a separate call."""
    return max(1, int(quantity))


def _check_quantity(quantity: Any) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValidationError(f"Quantity must be a positive integer, got {quantity!r}")


class CartSynchronizer:
    """
    Sends every cart mutation to the API and reloads the store afterwards.

    The store is never patched locally: a successful mutation is followed by a
    full reload, and a failed one leaves the store as it was. Errors are raised
    to the caller; nothing is retried.
    """

    def __init__(self, remote: CartRemote, store: CartStore, session: Session) -> None:
        """
        Initialize the synchronizer.

        Args:
            remote: Remote cart resource
            store: Cart store to reload after mutations
            session: Current session, read to decide whether mutations are allowed
        """
        self.remote = remote
        self.store = store
        self.session = session

    def _require_session(self, action: str) -> None:
        if not self.session.is_authenticated():
            logger.warning(f"{action} refused: not authenticated")
            raise AuthRequired()

    async def refresh(self) -> None:
        """Reload the store for the current session."""
        await self.store.load(self.session.is_authenticated())

    async def add_to_cart(self, product_id: str, quantity: int = 1, variant_id: Optional[str] = None) -> CartItem:
        """
        Add a product (optionally a specific variant) to the cart.

        Args:
            product_id: Product ID
            quantity: Quantity to add, at least 1
            variant_id: Variant ID, if the product has variants

        Returns:
            The cart item as created (or merged) by the API

        Raises:
            AuthRequired: If there is no session; no request is sent
            ValidationError: If quantity is not a positive integer
            RemoteRejection: If the API refused the item
            TransportFailure: If the API could not be reached
        """
        self._require_session("Add to cart")
        _check_quantity(quantity)
        if not product_id:
            raise ValidationError("Product ID is required")

        logger.info(f"=== ADD TO CART: product_id={product_id}, variant_id={variant_id}, quantity={quantity} ===")
        item = await self.remote.add_cart_item(product_id, quantity, variant_id)
        logger.info(f"ADD TO CART SUCCESS: item_id={item.id}")
        await self.refresh()
        return item

    async def update_quantity(self, item_id: str, quantity: int) -> CartItem:
        """
        Set the quantity of a cart item.

        Callers clamp to 1 first (see ``clamp_quantity``); a quantity below 1
        is a contract violation, not a removal.
        """
        self._require_session("Update quantity")
        _check_quantity(quantity)

        logger.info(f"=== UPDATE CART: item_id={item_id}, new_quantity={quantity} ===")
        item = await self.remote.update_cart_item(item_id, quantity)
        logger.info("UPDATE CART SUCCESS")
        await self.refresh()
        return item

    async def remove_from_cart(self, item_id: str) -> None:
        """Delete a cart item."""
        self._require_session("Remove from cart")

        logger.info(f"=== REMOVE FROM CART: item_id={item_id} ===")
        await self.remote.delete_cart_item(item_id)
        logger.info("REMOVE FROM CART SUCCESS")
        await self.refresh()

    async def clear_cart(self) -> None:
        """Forget the local cart. Server-side items are left alone."""
        logger.info("Clearing local cart")
        self.store.reset()
