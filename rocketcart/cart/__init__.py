"""Cart package: models, storage, engine and session facade."""
from .engine import CartEngine
from .models import Cart, Product, Stock, deserialize_cart, serialize_cart
from .service import CartSession, load_cart, open_session
from .storage import (
    CartStorage,
    FileCartStorage,
    MemoryCartStorage,
    RedisCartStorage,
    get_cart_storage,
)

__all__ = [
    "Cart",
    "Product",
    "Stock",
    "serialize_cart",
    "deserialize_cart",
    "CartStorage",
    "MemoryCartStorage",
    "FileCartStorage",
    "RedisCartStorage",
    "get_cart_storage",
    "CartEngine",
    "CartSession",
    "load_cart",
    "open_session",
]
