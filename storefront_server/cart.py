"""Per-session cart wiring: client, store, synchronizer and catalog."""

import logging
from typing import Optional

from .aggregator import Catalog, cart_total, item_count, order_summary
from .auth import AuthManager
from .config import StorefrontSettings
from .errors import AuthRequired, CartError
from .models import AuthCredentials, CartItem, CartStatus, CartTotal, OrderSummary
from .store import CartStore
from .storefront_client import StorefrontClient
from .synchronizer import CartSynchronizer

logger = logging.getLogger(__name__)


class StorefrontCart:
    """
    Cart of one client session.

    Adapters (MCP tools, HTTP endpoints) read ``store``/``summary()`` and send
    mutations through the methods here, which delegate to the synchronizer.
    """

    def __init__(
        self,
        auth_manager: AuthManager,
        client: StorefrontClient,
        settings: Optional[StorefrontSettings] = None,
    ) -> None:
        self.auth_manager = auth_manager
        self.client = client
        self.settings = settings or StorefrontSettings()
        self.store = CartStore(client.get_cart_items)
        self.synchronizer = CartSynchronizer(client, self.store, auth_manager)
        self.catalog = Catalog()

    @classmethod
    def from_settings(cls, settings: StorefrontSettings) -> "StorefrontCart":
        auth_manager = AuthManager(session_file=settings.session_file, token=settings.token)
        client = StorefrontClient(auth_manager, base_url=settings.api_url, timeout=settings.timeout)
        return cls(auth_manager, client, settings)

    @property
    def items(self) -> tuple[CartItem, ...]:
        return self.store.items

    @property
    def status(self) -> CartStatus:
        return self.store.status

    async def login(self, credentials: AuthCredentials) -> bool:
        """Log in and load the cart of the new session."""
        success = await self.client.login(credentials)
        if success:
            await self.synchronizer.refresh()
        return success

    async def validate_session(self) -> bool:
        """
        Check the stored token against the API.

        A rejected token is dropped and the local cart forgotten. Any other
        failure keeps the token for the next request.
        """
        if not self.auth_manager.is_authenticated():
            return False

        try:
            await self.client.get_current_user()
        except AuthRequired:
            await self.synchronizer.clear_cart()
            return False
        except CartError as e:
            logger.warning(f"Could not validate session: {e.message}")
        return self.auth_manager.is_authenticated()

    async def logout(self) -> None:
        """Drop the token and forget the local cart, ignoring in-flight loads."""
        await self.synchronizer.clear_cart()
        self.client.logout()
        logger.info("Logged out")

    async def refresh(self) -> None:
        await self.synchronizer.refresh()

    async def refresh_catalog(self) -> Catalog:
        """Fetch the product catalog used for pricing."""
        self.catalog = Catalog(await self.client.get_products())
        return self.catalog

    async def add_to_cart(self, product_id: str, quantity: int = 1, variant_id: Optional[str] = None) -> CartItem:
        return await self.synchronizer.add_to_cart(product_id, quantity, variant_id)

    async def update_quantity(self, item_id: str, quantity: int) -> CartItem:
        return await self.synchronizer.update_quantity(item_id, quantity)

    async def remove_from_cart(self, item_id: str) -> None:
        await self.synchronizer.remove_from_cart(item_id)

    async def clear_cart(self) -> None:
        await self.synchronizer.clear_cart()

    def item_count(self) -> int:
        return item_count(self.store.items)

    def total(self) -> CartTotal:
        return cart_total(self.store.items, self.catalog)

    def summary(self) -> OrderSummary:
        return order_summary(
            self.store.items,
            self.catalog,
            free_threshold=self.settings.free_shipping_threshold,
            shipping_fee=self.settings.shipping_fee,
            tax_rate=self.settings.tax_rate,
        )

    async def close(self) -> None:
        self.store.cancel()
        await self.client.close()
