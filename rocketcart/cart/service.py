"""Cart Access Facade - session-scoped entry point for cart consumers."""
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterator, Optional

from rocketcart.cart.engine import CartEngine, Inventory
from rocketcart.cart.models import Cart, Product, deserialize_cart, find_item
from rocketcart.cart.storage import CartStorage, get_cart_storage
from rocketcart.config import DEFAULT_CART_STORAGE_KEY, Settings, get_settings
from rocketcart.errors import CartError
from rocketcart.logging import get_logger, sanitize_for_logging
from rocketcart.notifications import Notifier, get_notifier

logger = get_logger(__name__)


async def load_cart(storage: CartStorage, key: str) -> Cart:
    """
    Hydrate a cart from the store.

    An absent, unreadable or malformed snapshot yields an empty cart.
    """
    safe_key = sanitize_for_logging(key)
    try:
        blob = await storage.get(key)
    except Exception as e:
        logger.warning(f"Could not read cart snapshot {safe_key}, starting empty: {e}")
        return ()

    if not blob:
        return ()

    try:
        cart = deserialize_cart(blob)
    except ValueError as e:
        logger.warning(f"Corrupted cart snapshot {safe_key}, starting empty: {e}")
        return ()

    logger.info(f"Loaded cart snapshot {safe_key} with {len(cart)} line item(s)")
    return cart


class CartSession:
    """
    One shopper session: hydrated cart plus the three cart operations.

    Usage:
        session = await CartSession.open(inventory, storage, notifier)
        await session.add_product(1)
        session.remove_product(1)
        await session.update_product_amount(2, amount=3)
        print(session.cart)
        await session.close()
    """

    def __init__(self, engine: CartEngine, owns_inventory: bool = False) -> None:
        self._engine = engine
        self._owns_inventory = owns_inventory

    @classmethod
    async def open(
        cls,
        inventory: Inventory,
        storage: CartStorage,
        notifier: Notifier,
        storage_key: str = DEFAULT_CART_STORAGE_KEY,
        language: str = "en",
        notify_invalid_amount: bool = False,
        owns_inventory: bool = False,
    ) -> "CartSession":
        """Hydrate the cart from storage and start a session."""
        items = await load_cart(storage, storage_key)
        engine = CartEngine(
            inventory,
            storage,
            notifier,
            storage_key,
            items=items,
            language=language,
            notify_invalid_amount=notify_invalid_amount,
        )
        return cls(engine, owns_inventory=owns_inventory)

    # ==================== READ VIEW ====================

    @property
    def cart(self) -> Cart:
        """Most recently committed cart (immutable)."""
        return self._engine.items

    def get(self, product_id: int) -> Optional[Product]:
        """Line item for a product, or None."""
        return find_item(self.cart, product_id)

    @property
    def total_units(self) -> int:
        """Sum of quantities over all line items."""
        return sum(item.amount for item in self.cart)

    def __len__(self) -> int:
        return len(self.cart)

    def __iter__(self) -> Iterator[Product]:
        return iter(self.cart)

    def __contains__(self, product_id: object) -> bool:
        return any(item.id == product_id for item in self.cart)

    # ==================== OPERATIONS ====================

    async def add_product(self, product_id: int) -> Optional[CartError]:
        """Add one unit of a product. Returns the rejection, if any."""
        return await self._engine.add_product(product_id)

    def remove_product(self, product_id: int) -> Optional[CartError]:
        """Remove a product line. Returns the rejection, if any."""
        return self._engine.remove_product(product_id)

    async def update_product_amount(self, product_id: int, amount: int) -> Optional[CartError]:
        """Set a product's quantity. Returns the rejection, if any."""
        return await self._engine.update_product_amount(product_id, amount)

    # ==================== LIFECYCLE ====================

    async def flush(self) -> bool:
        """Wait for pending store writes; True if the current cart is persisted."""
        return await self._engine.flush()

    async def close(self) -> bool:
        """Flush pending writes and release owned clients."""
        persisted = await self.flush()
        if not persisted:
            logger.warning("Cart session closed with an unpersisted snapshot")
        if self._owns_inventory:
            aclose = getattr(self._engine.inventory, "aclose", None)
            if aclose is not None:
                await aclose()
        return persisted


@asynccontextmanager
async def open_session(
    settings: Optional[Settings] = None,
    inventory: Optional[Inventory] = None,
    storage: Optional[CartStorage] = None,
    notifier: Optional[Notifier] = None,
) -> AsyncIterator[CartSession]:
    """
    Open a cart session wired from settings.

    Collaborators passed explicitly are used as-is and not closed;
    the ones built here are closed when the block exits.

    Usage:
        async with open_session() as session:
            await session.add_product(1)
    """
    from rocketcart.inventory import InventoryClient

    settings = settings or get_settings()
    owned_inventory = None
    if inventory is None:
        inventory = owned_inventory = InventoryClient.from_settings(settings)
    owned_storage = None
    if storage is None:
        storage = owned_storage = get_cart_storage(settings)

    owned_notifier = None
    if notifier is None:
        notifier = owned_notifier = get_notifier(settings)

    session = await CartSession.open(
        inventory,
        storage,
        notifier,
        storage_key=settings.cart_storage_key,
        language=settings.language,
        notify_invalid_amount=settings.notify_invalid_amount,
        owns_inventory=owned_inventory is not None,
    )
    try:
        yield session
    finally:
        await session.close()
        drain = getattr(owned_notifier, "drain", None)
        if drain is not None:
            await drain()
        aclose = getattr(owned_storage, "aclose", None)
        if aclose is not None:
            await aclose()


__all__ = ["CartSession", "load_cart", "open_session"]
