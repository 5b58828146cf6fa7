"""Tests for interleaved cart operations and background store writes"""
import asyncio
import json
import threading
from unittest.mock import AsyncMock, patch

import pytest

from rocketcart.cart.service import CartSession
from rocketcart.cart.storage import MemoryCartStorage
from rocketcart.errors import CartErrorKind


async def _settle():
    """Let scheduled tasks run up to their next suspension point."""
    for _ in range(5):
        await asyncio.sleep(0)


class FailingStorage(MemoryCartStorage):
    """Store whose writes always fail"""

    async def set(self, key, value):
        raise ConnectionError("store unavailable")


class SlowStorage(MemoryCartStorage):
    """Store recording writes; each write waits for `release`"""

    def __init__(self):
        super().__init__()
        self.release = asyncio.Event()
        self.writes: list[str] = []

    async def set(self, key, value):
        await self.release.wait()
        self.writes.append(value)
        await super().set(key, value)


@pytest.mark.asyncio
async def test_racing_adds_respect_single_unit_of_stock(open_cart, inventory, notifier):
    """Two adds racing for the last unit commit exactly one line with amount 1."""
    inventory.stock[1] = 1
    inventory.gate = asyncio.Event()
    session = await open_cart()

    first = asyncio.create_task(session.add_product(1))
    second = asyncio.create_task(session.add_product(1))
    await _settle()
    inventory.gate.set()
    results = await asyncio.gather(first, second)

    assert results[0] is None
    assert results[1].kind == CartErrorKind.OUT_OF_STOCK
    assert [(item.id, item.amount) for item in session.cart] == [(1, 1)]
    notifier.report_error.assert_called_once()


@pytest.mark.asyncio
async def test_add_and_update_do_not_interleave(open_cart, seed_cart, inventory):
    seed_cart((1, 1))
    inventory.gate = asyncio.Event()
    session = await open_cart()

    add = asyncio.create_task(session.add_product(1))
    update = asyncio.create_task(session.update_product_amount(1, 4))
    await _settle()
    # The update waits for the add to finish its lookup and commit
    assert inventory.stock_calls == [1]
    inventory.gate.set()
    await asyncio.gather(add, update)

    assert session.get(1).amount == 4


@pytest.mark.asyncio
async def test_remove_during_inflight_add_is_kept(open_cart, seed_cart, inventory):
    """A remove landing while an add waits on inventory is not overwritten."""
    seed_cart((1, 1), (2, 1))
    inventory.gate = asyncio.Event()
    session = await open_cart()

    add = asyncio.create_task(session.add_product(1))
    await _settle()
    assert session.remove_product(2) is None
    inventory.gate.set()
    assert await add is None

    assert [(item.id, item.amount) for item in session.cart] == [(1, 2)]


@pytest.mark.asyncio
async def test_remove_during_inflight_add_of_new_product_is_kept(open_cart, seed_cart, inventory, stored_cart):
    seed_cart((3, 1))
    session = await open_cart()
    inventory.gate = asyncio.Event()

    add = asyncio.create_task(session.add_product(1))
    await _settle()
    session.remove_product(3)
    inventory.gate.set()
    await add

    assert [(item.id, item.amount) for item in session.cart] == [(1, 1)]
    assert await session.flush() is True
    assert [item["id"] for item in stored_cart()] == [1]


@pytest.mark.asyncio
async def test_operations_do_not_wait_for_store(inventory, notifier):
    storage = SlowStorage()
    session = await CartSession.open(inventory, storage, notifier)

    assert await session.add_product(1) is None
    assert await session.add_product(1) is None
    assert session.get(1).amount == 2
    assert storage.writes == []

    storage.release.set()
    assert await session.flush() is True
    # Writes land in commit order; the store ends with the latest snapshot
    assert json.loads(storage.writes[-1])[0]["amount"] == 2
    assert json.loads(storage.data["@RocketShoes:cart"])[0]["amount"] == 2


@pytest.mark.asyncio
async def test_store_failure_is_not_surfaced(inventory, notifier, caplog):
    session = await CartSession.open(inventory, FailingStorage(), notifier)

    error = await session.add_product(1)

    assert error is None
    assert session.get(1).amount == 1
    assert await session.flush() is False
    assert "Failed to persist cart snapshot" in caplog.text
    notifier.report_error.assert_not_called()


def test_remove_after_session_loop_ended_is_not_persisted(inventory, storage, notifier, stored_cart, caplog):
    """A remove with no event loop commits in memory, never blocks on the store."""
    async def _open_and_add():
        session = await CartSession.open(inventory, storage, notifier)
        await session.add_product(1)
        await session.flush()
        return session

    session = asyncio.run(_open_and_add())

    with patch.object(storage, "set", new_callable=AsyncMock) as store_set:
        assert session.remove_product(1) is None

    store_set.assert_not_called()
    assert session.cart == ()
    assert [item["id"] for item in stored_cart()] == [1]
    assert "not persisted" in caplog.text
    assert asyncio.run(session.flush()) is False


def test_remove_from_another_thread_writes_on_session_loop(inventory, storage, notifier, stored_cart):
    loop = asyncio.new_event_loop()
    thread = threading.Thread(target=loop.run_forever, daemon=True)
    thread.start()

    def on_loop(coro):
        return asyncio.run_coroutine_threadsafe(coro, loop).result(timeout=5)

    try:
        session = on_loop(CartSession.open(inventory, storage, notifier))
        on_loop(session.add_product(1))
        on_loop(session.add_product(2))

        assert session.remove_product(1) is None

        assert on_loop(session.flush()) is True
        assert [item["id"] for item in stored_cart()] == [2]
    finally:
        loop.call_soon_threadsafe(loop.stop)
        thread.join(timeout=5)
        loop.close()
