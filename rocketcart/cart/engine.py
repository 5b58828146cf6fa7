"""
Cart State Engine

Owns the in-memory cart of one session and applies add / remove /
update-amount against live stock:

- async operations hold the session lock for their whole
  query -> decide -> commit sequence
- cart state is read after the last inventory await, so a synchronous
  remove landing during a stock query is never overwritten
- commit replaces the in-memory tuple, then schedules the store write;
  writes land in commit order and are never awaited by the operation
"""
import asyncio
from typing import Any, Optional, Protocol

from rocketcart.cart.models import Cart, Product, Stock, find_item, serialize_cart
from rocketcart.cart.storage import CartStorage
from rocketcart.errors import (
    CartError,
    CartErrorKind,
    CartOperation,
    CartOperationError,
    InvalidAmountRequested,
    InventoryError,
    OutOfStock,
    ProductMetadataFailed,
    ProductNotInCart,
    StockQueryFailed,
    message_key_for,
)
from rocketcart.i18n import get_text
from rocketcart.logging import get_logger, sanitize_for_logging
from rocketcart.notifications import Notifier

logger = get_logger(__name__)


class Inventory(Protocol):
    """Stock and catalog lookups used by the engine."""

    async def get_stock(self, product_id: int) -> Optional[Stock]:
        ...

    async def get_product(self, product_id: int) -> dict[str, Any]:
        ...


class CartEngine:
    """
    Authoritative cart state for one session.

    Usage:
        engine = CartEngine(inventory, storage, notifier, storage_key, items)
        error = await engine.add_product(1)
        engine.remove_product(1)
        error = await engine.update_product_amount(2, 3)
    """

    def __init__(
        self,
        inventory: Inventory,
        storage: CartStorage,
        notifier: Notifier,
        storage_key: str,
        items: Cart = (),
        language: str = "en",
        notify_invalid_amount: bool = False,
    ) -> None:
        self._inventory = inventory
        self._storage = storage
        self._notifier = notifier
        self.storage_key = storage_key
        self.language = language
        self.notify_invalid_amount = notify_invalid_amount

        self._items: Cart = tuple(items)
        self._lock = asyncio.Lock()

        # Store writes: version of the latest commit vs. latest durable one
        self._version = 0
        self._persisted_version = 0
        self._write_lock = asyncio.Lock()
        self._pending_writes: set[asyncio.Task] = set()
        # Loop the session was opened on; store clients may be bound to it
        try:
            self._loop: Optional[asyncio.AbstractEventLoop] = asyncio.get_running_loop()
        except RuntimeError:
            self._loop = None

    @property
    def inventory(self) -> Inventory:
        return self._inventory

    @property
    def items(self) -> Cart:
        """Most recently committed cart."""
        return self._items

    # ==================== OPERATIONS ====================

    async def add_product(self, product_id: int) -> Optional[CartError]:
        """Add one unit of a product, appending it if not in the cart yet."""
        async with self._lock:
            try:
                await self._add(product_id)
            except CartOperationError as e:
                return self._reject(CartOperation.ADD, e)
        return None

    def remove_product(self, product_id: int) -> Optional[CartError]:
        """Remove a product line from the cart."""
        try:
            self._remove(product_id)
        except CartOperationError as e:
            return self._reject(CartOperation.REMOVE, e)
        return None

    async def update_product_amount(self, product_id: int, amount: int) -> Optional[CartError]:
        """Set the quantity of a product already in the cart."""
        if amount < 1:
            error = InvalidAmountRequested(product_id, f"requested amount {amount}")
            return self._reject(CartOperation.UPDATE_AMOUNT, error, notify=self.notify_invalid_amount)

        async with self._lock:
            try:
                await self._update_amount(product_id, amount)
            except CartOperationError as e:
                return self._reject(CartOperation.UPDATE_AMOUNT, e)
        return None

    # ==================== DECISIONS ====================

    async def _add(self, product_id: int) -> None:
        stock = await self._query_stock(product_id)

        existing = find_item(self._items, product_id)
        if stock is None or stock.amount == 0 or (existing is not None and existing.amount >= stock.amount):
            available = stock.amount if stock is not None else 0
            raise OutOfStock(product_id, f"in cart {existing.amount if existing is not None else 0}, available {available}")

        if existing is not None:
            self._commit(tuple(
                item.with_amount(item.amount + 1) if item.id == product_id else item
                for item in self._items
            ))
            logger.info(f"Incremented product {product_id} to {existing.amount + 1}")
            return

        try:
            metadata = await self._inventory.get_product(product_id)
            new_item = Product.from_catalog(product_id, metadata)
        except (InventoryError, ValueError) as e:
            raise ProductMetadataFailed(product_id, str(e)) from e

        # Re-read after the catalog await: a remove may have committed meanwhile
        self._commit(self._items + (new_item,))
        logger.info(f"Added product {product_id} to cart")

    def _remove(self, product_id: int) -> None:
        if find_item(self._items, product_id) is None:
            raise ProductNotInCart(product_id)

        self._commit(tuple(item for item in self._items if item.id != product_id))
        logger.info(f"Removed product {product_id} from cart")

    async def _update_amount(self, product_id: int, amount: int) -> None:
        stock = await self._query_stock(product_id)

        if find_item(self._items, product_id) is None:
            raise ProductNotInCart(product_id)

        if stock is None or amount > stock.amount:
            available = stock.amount if stock is not None else 0
            raise OutOfStock(product_id, f"requested {amount}, available {available}")

        self._commit(tuple(
            item.with_amount(amount) if item.id == product_id else item
            for item in self._items
        ))
        logger.info(f"Set product {product_id} amount to {amount}")

    async def _query_stock(self, product_id: int) -> Optional[Stock]:
        try:
            return await self._inventory.get_stock(product_id)
        except InventoryError as e:
            raise StockQueryFailed(product_id, e.message) from e

    def _reject(self, operation: CartOperation, error: CartOperationError, notify: bool = True) -> CartError:
        message = ""
        if notify:
            message = get_text(message_key_for(operation, error.kind), self.language)
            self._notifier.report_error(message)

        level = logger.info if error.kind == CartErrorKind.INVALID_AMOUNT_REQUESTED else logger.warning
        level(
            f"Cart {operation.value} rejected for product {sanitize_for_logging(error.product_id)}: "
            f"{error.kind.value} {error.detail}".rstrip()
        )
        return CartError(
            kind=error.kind,
            operation=operation,
            product_id=error.product_id,
            message=message,
            detail=error.detail or None,
            notified=notify,
        )

    # ==================== COMMIT / PERSISTENCE ====================

    def _commit(self, items: Cart) -> None:
        self._items = items
        self._version += 1
        self._schedule_write(self._version, serialize_cart(items))

    def _schedule_write(self, version: int, snapshot: str) -> None:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # Synchronous caller outside the event loop (remove_product from another thread)
            if self._loop is not None and self._loop.is_running():
                self._loop.call_soon_threadsafe(self._start_write, version, snapshot)
                return
            logger.warning(
                f"No running event loop for cart session, snapshot v{version} under "
                f"{sanitize_for_logging(self.storage_key)} not persisted"
            )
            return
        self._start_write(version, snapshot)

    def _start_write(self, version: int, snapshot: str) -> None:
        task = asyncio.get_running_loop().create_task(self._write(version, snapshot))
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)

    async def _write(self, version: int, snapshot: str) -> None:
        async with self._write_lock:
            if version <= self._persisted_version:
                return
            try:
                await self._storage.set(self.storage_key, snapshot)
            except Exception:
                logger.exception(f"Failed to persist cart snapshot v{version} under {sanitize_for_logging(self.storage_key)}")
                return
            self._persisted_version = version

    async def flush(self) -> bool:
        """
        Wait for scheduled store writes.

        Returns:
            True if the latest committed cart reached the store
        """
        while self._pending_writes:
            await asyncio.gather(*list(self._pending_writes))
        return self._persisted_version == self._version


__all__ = ["Inventory", "CartEngine"]
