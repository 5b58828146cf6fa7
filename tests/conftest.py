"""Pytest configuration and fixtures"""
import asyncio
import json
import os
from typing import Any, Optional
from unittest.mock import Mock

import httpx
import pytest

# Set test environment variables
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("CART_STORAGE", "memory")
os.environ.setdefault("CART_NOTIFIER", "log")

from rocketcart.cart.models import Product, Stock
from rocketcart.cart.service import CartSession
from rocketcart.cart.storage import MemoryCartStorage
from rocketcart.config import DEFAULT_CART_STORAGE_KEY
from rocketcart.errors import InventoryError
from rocketcart.inventory import InventoryClient


class FakeInventory:
    """
    In-process inventory.

    stock: product id -> available units (missing id = no stock record)
    catalog: product id -> catalog fields
    gate: when set, every lookup waits for it before answering
    """

    def __init__(self, stock=None, catalog=None):
        self.stock: dict[int, int] = dict(stock or {})
        self.catalog: dict[int, dict[str, Any]] = dict(catalog or {})
        self.stock_errors: set[int] = set()
        self.catalog_errors: set[int] = set()
        self.gate: Optional[asyncio.Event] = None
        self.stock_calls: list[int] = []
        self.product_calls: list[int] = []

    async def _wait(self) -> None:
        if self.gate is not None:
            await self.gate.wait()

    async def get_stock(self, product_id: int) -> Optional[Stock]:
        self.stock_calls.append(product_id)
        await self._wait()
        if product_id in self.stock_errors:
            raise InventoryError("Inventory API unreachable", status_code=None)
        if product_id not in self.stock:
            return None
        return Stock(id=product_id, amount=self.stock[product_id])

    async def get_product(self, product_id: int) -> dict[str, Any]:
        self.product_calls.append(product_id)
        await self._wait()
        if product_id in self.catalog_errors or product_id not in self.catalog:
            raise InventoryError("Product query failed: HTTP 404", status_code=404)
        return dict(self.catalog[product_id])


@pytest.fixture
def sample_catalog():
    """Catalog served by the reference inventory API"""
    return {
        1: {"id": 1, "title": "Tênis de Caminhada Leve Confortável", "price": 179.9, "image": "https://img.test/1.jpg"},
        2: {"id": 2, "title": "Tênis VR Caminhada Confortável", "price": 139.9, "image": "https://img.test/2.jpg"},
        3: {"id": 3, "title": "Tênis Adidas Duramo Lite 2.0", "price": 219.9, "image": "https://img.test/3.jpg"},
    }


@pytest.fixture
def sample_stock():
    """Available units per product"""
    return {1: 5, 2: 5, 3: 2}


@pytest.fixture
def inventory(sample_stock, sample_catalog):
    return FakeInventory(stock=sample_stock, catalog=sample_catalog)


@pytest.fixture
def storage():
    return MemoryCartStorage()


@pytest.fixture
def notifier():
    """Notification sink recording report_error calls"""
    return Mock()


@pytest.fixture
def make_item(sample_catalog):
    """Build a line item for a catalog product"""
    def _make(product_id: int, amount: int = 1) -> Product:
        return Product.model_validate({**sample_catalog[product_id], "amount": amount})
    return _make


@pytest.fixture
def seed_cart(storage, make_item):
    """Write a cart snapshot to the store: seed_cart((1, 2), (3, 1))"""
    def _seed(*lines):
        items = [make_item(product_id, amount).to_dict() for product_id, amount in lines]
        storage.data[DEFAULT_CART_STORAGE_KEY] = json.dumps(items)
    return _seed


@pytest.fixture
def open_cart(inventory, storage, notifier):
    """Open a CartSession over the fake collaborators"""
    async def _open(**kwargs) -> CartSession:
        return await CartSession.open(inventory, storage, notifier, **kwargs)
    return _open


@pytest.fixture
def stored_cart(storage):
    """Decoded snapshot currently in the store"""
    def _stored(key: str = DEFAULT_CART_STORAGE_KEY):
        blob = storage.data.get(key)
        return json.loads(blob) if blob is not None else None
    return _stored


@pytest.fixture
def inventory_api(sample_stock, sample_catalog):
    """
    httpx.MockTransport serving /stock/{id} and /products/{id}.

    Returns (transport, requests) where requests records every request path.
    """
    requests: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request.url.path)
        kind, _, raw_id = request.url.path.strip("/").partition("/")
        product_id = int(raw_id)
        if kind == "stock" and product_id in sample_stock:
            return httpx.Response(200, json={"id": product_id, "amount": sample_stock[product_id]})
        if kind == "products" and product_id in sample_catalog:
            return httpx.Response(200, json=sample_catalog[product_id])
        return httpx.Response(404, json={})

    return httpx.MockTransport(handler), requests


@pytest.fixture
def inventory_client(inventory_api):
    transport, _ = inventory_api
    return InventoryClient("http://inventory.test", retries=0, transport=transport)
