"""In-memory cart read model."""

import logging
from typing import Awaitable, Callable, Iterable, Optional

from .errors import RemoteRejection
from .models import CartItem, CartStatus

logger = logging.getLogger(__name__)

CartFetcher = Callable[[], Awaitable[list[CartItem]]]


class CartStore:
    """
    Holds the current cart snapshot and a loading/error status.

    The store is only ever filled wholesale: by ``load`` (a full fetch) or by
    ``replace``. Writes go through the synchronizer, which reloads afterwards.
    """

    def __init__(self, fetch_items: CartFetcher) -> None:
        """
        Initialize the store.

        Args:
            fetch_items: Coroutine function returning every cart item of the session
        """
        self._fetch_items = fetch_items
        self._items: tuple[CartItem, ...] = ()
        self._generation = 0
        self.status = CartStatus.IDLE
        self.error: Optional[Exception] = None

    @property
    def items(self) -> tuple[CartItem, ...]:
        return self._items

    @property
    def is_loading(self) -> bool:
        return self.status == CartStatus.LOADING

    async def load(self, session_authenticated: bool) -> None:
        """
        Fetch the whole cart and replace the snapshot with it.

        Unauthenticated sessions get an empty cart without a network call. A
        failed fetch leaves the items as they were and parks the error in
        ``status``/``error``; it is not raised. Results of a load that was
        superseded by a newer load, ``cancel`` or ``reset`` are discarded.
        """
        self._generation += 1
        generation = self._generation

        if not session_authenticated:
            self._items = ()
            self.status = CartStatus.IDLE
            self.error = None
            return

        self.status = CartStatus.LOADING
        try:
            items = await self._fetch_items()
            if generation != self._generation:
                logger.debug(f"Discarding superseded cart load #{generation}")
                return
            self.replace(items)
        except Exception as e:
            if generation != self._generation:
                logger.debug(f"Discarding failed superseded cart load #{generation}: {e}")
                return
            logger.warning(f"Cart load failed: {e}")
            self.status = CartStatus.ERROR
            self.error = e
            return

        self.status = CartStatus.IDLE
        self.error = None
        logger.info(f"Cart loaded: {len(self._items)} line(s)")

    def replace(self, items: Iterable[CartItem]) -> None:
        """Swap in a complete new item collection."""
        new_items = tuple(items)
        seen: set[str] = set()
        for item in new_items:
            if item.id in seen:
                raise RemoteRejection(f"Cart payload contains duplicate item {item.id}")
            seen.add(item.id)
        self._items = new_items

    def cancel(self) -> None:
        """Stop listening for any in-flight load."""
        self._generation += 1
        if self.status == CartStatus.LOADING:
            self.status = CartStatus.IDLE

    def reset(self) -> None:
        """Forget the local cart: empty, idle, in-flight loads ignored."""
        self.cancel()
        self._items = ()
        self.status = CartStatus.IDLE
        self.error = None
