"""
Tests for the cart store
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from storefront_server.errors import RemoteRejection, TransportFailure
from storefront_server.models import CartItem, CartStatus
from storefront_server.store import CartStore


def items(*quantities):
    return [CartItem(id=f"i{n}", product_id="prod-a", quantity=q) for n, q in enumerate(quantities)]


class TestLoad:
    """Tests for CartStore.load."""

    @pytest.mark.asyncio
    async def test_unauthenticated_is_empty_without_fetch(self):
        fetch = AsyncMock(return_value=items(1))
        store = CartStore(fetch)

        await store.load(False)

        fetch.assert_not_called()
        assert store.items == ()
        assert store.status == CartStatus.IDLE

    @pytest.mark.asyncio
    async def test_unauthenticated_clears_previous_items(self):
        store = CartStore(AsyncMock(return_value=items(1, 2)))
        await store.load(True)

        await store.load(False)

        assert store.items == ()

    @pytest.mark.asyncio
    async def test_authenticated_load(self):
        fetched = items(2, 3)
        store = CartStore(AsyncMock(return_value=fetched))

        await store.load(True)

        assert store.items == tuple(fetched)
        assert store.status == CartStatus.IDLE
        assert store.error is None

    @pytest.mark.asyncio
    async def test_failure_is_parked(self):
        fetch = AsyncMock(return_value=items(1))
        store = CartStore(fetch)
        await store.load(True)
        before = store.items

        fetch.side_effect = TransportFailure()
        await store.load(True)

        assert store.status == CartStatus.ERROR
        assert isinstance(store.error, TransportFailure)
        assert store.items == before

    @pytest.mark.asyncio
    async def test_retry_after_failure(self):
        fetch = AsyncMock(side_effect=[TransportFailure(), items(4)])
        store = CartStore(fetch)

        await store.load(True)
        assert store.status == CartStatus.ERROR

        await store.load(True)
        assert store.status == CartStatus.IDLE
        assert store.error is None
        assert store.items[0].quantity == 4

    @pytest.mark.asyncio
    async def test_status_is_loading_while_fetching(self):
        release = asyncio.Event()
        seen = []

        async def fetch():
            seen.append(store.status)
            await release.wait()
            return items(1)

        store = CartStore(fetch)
        task = asyncio.create_task(store.load(True))
        await asyncio.sleep(0)
        assert store.is_loading

        release.set()
        await task
        assert seen == [CartStatus.LOADING]
        assert not store.is_loading

    @pytest.mark.asyncio
    async def test_latest_load_wins(self):
        first_release = asyncio.Event()
        results = [items(1), items(9, 9)]
        calls = []

        async def fetch():
            call = len(calls)
            calls.append(call)
            if call == 0:
                await first_release.wait()
            return results[call]

        store = CartStore(fetch)
        stale = asyncio.create_task(store.load(True))
        await asyncio.sleep(0)

        await store.load(True)
        first_release.set()
        await stale

        assert len(store.items) == 2
        assert store.status == CartStatus.IDLE

    @pytest.mark.asyncio
    async def test_cancel_discards_in_flight_load(self):
        release = asyncio.Event()

        async def fetch():
            await release.wait()
            return items(1)

        store = CartStore(fetch)
        task = asyncio.create_task(store.load(True))
        await asyncio.sleep(0)

        store.cancel()
        release.set()
        await task

        assert store.items == ()
        assert store.status == CartStatus.IDLE

    @pytest.mark.asyncio
    async def test_cancelled_load_failure_is_not_parked(self):
        release = asyncio.Event()

        async def fetch():
            await release.wait()
            raise TransportFailure()

        store = CartStore(fetch)
        task = asyncio.create_task(store.load(True))
        await asyncio.sleep(0)

        store.cancel()
        release.set()
        await task

        assert store.status == CartStatus.IDLE
        assert store.error is None

    @pytest.mark.asyncio
    async def test_duplicate_ids_rejected(self):
        duplicated = [
            CartItem(id="i1", product_id="prod-a", quantity=1),
            CartItem(id="i1", product_id="prod-c", quantity=2),
        ]
        store = CartStore(AsyncMock(return_value=duplicated))

        await store.load(True)

        assert store.status == CartStatus.ERROR
        assert isinstance(store.error, RemoteRejection)
        assert store.items == ()


class TestReplace:
    """Tests for replace and reset."""

    def test_replace_swaps_everything(self):
        store = CartStore(AsyncMock())
        store.replace(items(1, 2, 3))
        store.replace(items(5))

        assert len(store.items) == 1
        assert store.items[0].quantity == 5

    def test_replace_rejects_duplicates_atomically(self):
        store = CartStore(AsyncMock())
        store.replace(items(1))

        with pytest.raises(RemoteRejection):
            store.replace([CartItem(id="x", product_id="a", quantity=1)] * 2)

        assert store.items == tuple(items(1))

    def test_reset(self):
        store = CartStore(AsyncMock())
        store.replace(items(1, 2))
        store.error = TransportFailure()

        store.reset()

        assert store.items == ()
        assert store.status == CartStatus.IDLE
        assert store.error is None
