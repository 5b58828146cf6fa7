"""
Cart error taxonomy.

Domain rejections are raised inside the engine as CartOperationError
subclasses and leave the facade as CartError values, so callers can tell
causes apart without matching message text.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

# Message keys (resolved through rocketcart.i18n)
MSG_ADD_FAILED = "cart.add_failed"
MSG_REMOVE_FAILED = "cart.remove_failed"
MSG_UPDATE_FAILED = "cart.update_failed"
MSG_OUT_OF_STOCK = "cart.out_of_stock"
MSG_INVALID_AMOUNT = "cart.invalid_amount"


class CartOperation(str, Enum):
    """Mutating cart operations."""
    ADD = "add"
    REMOVE = "remove"
    UPDATE_AMOUNT = "update_amount"


class CartErrorKind(str, Enum):
    """Why a cart operation was rejected."""
    STOCK_QUERY_FAILED = "stock_query_failed"
    PRODUCT_METADATA_FAILED = "product_metadata_failed"
    OUT_OF_STOCK = "out_of_stock"
    PRODUCT_NOT_IN_CART = "product_not_in_cart"
    INVALID_AMOUNT_REQUESTED = "invalid_amount_requested"


# Generic failure message per operation
OPERATION_FAILURE_MESSAGES = {
    CartOperation.ADD: MSG_ADD_FAILED,
    CartOperation.REMOVE: MSG_REMOVE_FAILED,
    CartOperation.UPDATE_AMOUNT: MSG_UPDATE_FAILED,
}

# Kinds with their own message instead of the operation's generic one
SPECIFIC_MESSAGES = {
    CartErrorKind.OUT_OF_STOCK: MSG_OUT_OF_STOCK,
    CartErrorKind.INVALID_AMOUNT_REQUESTED: MSG_INVALID_AMOUNT,
}


def message_key_for(operation: CartOperation, kind: CartErrorKind) -> str:
    """Translation key reported to the shopper for a rejection."""
    return SPECIFIC_MESSAGES.get(kind, OPERATION_FAILURE_MESSAGES[operation])


@dataclass(frozen=True)
class CartError:
    """Rejected cart operation, returned by the facade."""
    kind: CartErrorKind
    operation: CartOperation
    product_id: int
    message: str  # User-facing text ("" when the rejection is silent)
    detail: Optional[str] = None  # Technical cause, for logs and debugging
    notified: bool = False


class ConfigurationError(ValueError):
    """Missing or invalid setting (environment variable or backend wiring)."""


class InventoryError(Exception):
    """Inventory API request failed (transport, status or payload)."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class CartOperationError(Exception):
    """Base class for cart rejections raised inside the engine."""

    kind: CartErrorKind

    def __init__(self, product_id: int, detail: str = "") -> None:
        super().__init__(detail or self.kind.value)
        self.product_id = product_id
        self.detail = detail


class StockQueryFailed(CartOperationError):
    kind = CartErrorKind.STOCK_QUERY_FAILED


class ProductMetadataFailed(CartOperationError):
    kind = CartErrorKind.PRODUCT_METADATA_FAILED


class OutOfStock(CartOperationError):
    kind = CartErrorKind.OUT_OF_STOCK


class ProductNotInCart(CartOperationError):
    kind = CartErrorKind.PRODUCT_NOT_IN_CART


class InvalidAmountRequested(CartOperationError):
    kind = CartErrorKind.INVALID_AMOUNT_REQUESTED


__all__ = [
    "MSG_ADD_FAILED",
    "MSG_REMOVE_FAILED",
    "MSG_UPDATE_FAILED",
    "MSG_OUT_OF_STOCK",
    "MSG_INVALID_AMOUNT",
    "CartOperation",
    "CartErrorKind",
    "CartError",
    "message_key_for",
    "ConfigurationError",
    "InventoryError",
    "CartOperationError",
    "StockQueryFailed",
    "ProductMetadataFailed",
    "OutOfStock",
    "ProductNotInCart",
    "InvalidAmountRequested",
]
