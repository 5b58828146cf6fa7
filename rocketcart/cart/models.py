"""Cart line items, stock records and snapshot serialization."""
import json
from typing import Any, Iterable, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from rocketcart.logging import get_logger

logger = get_logger(__name__)


class Product(BaseModel):
    """
    One product line in the cart.

    Only ``id`` and ``amount`` are interpreted; catalog metadata (title,
    price, image, ...) is kept as extra fields and written back unmodified.
    """
    model_config = ConfigDict(extra="allow", frozen=True)

    id: int
    amount: int = Field(ge=1)

    @property
    def metadata(self) -> dict[str, Any]:
        """Catalog fields carried with the line item."""
        return dict(self.model_extra or {})

    def with_amount(self, amount: int) -> "Product":
        """Copy of this line item with a new quantity."""
        if amount < 1:
            raise ValueError("amount must be >= 1")
        return self.model_copy(update={"amount": amount})

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for storage."""
        return self.model_dump(mode="json")

    @classmethod
    def from_catalog(cls, product_id: int, data: dict[str, Any]) -> "Product":
        """Create a new line item (amount 1) from catalog metadata."""
        return cls.model_validate({**data, "id": product_id, "amount": 1})


class Stock(BaseModel):
    """Units available for a product at query time."""
    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    product_id: int = Field(alias="id")
    amount: int = Field(ge=0)


Cart = Tuple[Product, ...]

_snapshot_adapter = TypeAdapter(list[Product])


def find_item(cart: Iterable[Product], product_id: int) -> Optional[Product]:
    """Line item for product_id, or None."""
    return next((item for item in cart if item.id == product_id), None)


def serialize_cart(cart: Iterable[Product]) -> str:
    """Encode a cart as the JSON snapshot written to the store."""
    return json.dumps([item.to_dict() for item in cart], ensure_ascii=False)


def deserialize_cart(blob: str | bytes) -> Cart:
    """
    Decode a stored snapshot.

    Duplicate product ids keep their first occurrence.

    Raises:
        ValueError: If the snapshot is not a valid list of line items
            (pydantic.ValidationError is a ValueError subclass)
    """
    items = _snapshot_adapter.validate_json(blob)

    unique: list[Product] = []
    seen: set[int] = set()
    for item in items:
        if item.id in seen:
            logger.warning(f"Dropping duplicate line item {item.id} from cart snapshot")
            continue
        seen.add(item.id)
        unique.append(item)
    return tuple(unique)


__all__ = [
    "Product",
    "Stock",
    "Cart",
    "find_item",
    "serialize_cart",
    "deserialize_cart",
]
