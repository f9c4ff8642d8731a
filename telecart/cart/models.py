"""Cart models: immutable line items, carts and the cart factory."""
import math
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Optional, Tuple

from telecart.errors import DuplicateItemError, ItemNotFoundError, ValidationError

# Totals are floats; compare them with this tolerance
TOTAL_EPSILON = 0.01

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


def to_iso(value: datetime) -> str:
    """ISO-8601 with millisecond precision and a Z suffix."""
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def totals_match(left: float, right: float) -> bool:
    return abs(left - right) <= TOTAL_EPSILON


class ItemType(str, Enum):
    """Kinds of products sold in the storefront."""
    PLAN = "plan"
    PHONE = "phone"
    ACCESSORY = "accessory"


def _require_text(value, field_name: str, label: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{label} is required", field=field_name)


def _is_finite(value) -> bool:
    # ints too large for a float overflow in isfinite
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


@dataclass(frozen=True)
class CartItem:
    """Single line item. Validated on construction, never mutated."""
    id: str
    product_id: str
    name: str
    type: ItemType
    price: float
    quantity: int

    def __post_init__(self):
        _require_text(self.id, "id", "Item ID")
        _require_text(self.product_id, "product_id", "Product ID")
        _require_text(self.name, "name", "Item name")

        try:
            item_type = ItemType(self.type)
        except ValueError:
            raise ValidationError(f"Invalid item type: {self.type}", field="type")
        object.__setattr__(self, "type", item_type)

        price = self.price
        if isinstance(price, bool) or not isinstance(price, (int, float)) or not _is_finite(price):
            raise ValidationError("Price must be a number", field="price")
        if price < 0:
            raise ValidationError("Price cannot be negative", field="price")

        quantity = self.quantity
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError("Quantity must be a positive integer", field="quantity")

    @property
    def line_total(self) -> float:
        """Price for all units of this item."""
        return self.price * self.quantity

    def to_dict(self) -> dict:
        """Convert to the JSON payload shape."""
        return {
            "id": self.id,
            "productId": self.product_id,
            "name": self.name,
            "type": self.type.value,
            "price": self.price,
            "quantity": self.quantity,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CartItem":
        """Create from the JSON payload shape."""
        return cls(
            id=data["id"],
            product_id=data["productId"],
            name=data["name"],
            type=data["type"],
            price=data["price"],
            quantity=data["quantity"],
        )


@dataclass(frozen=True)
class Cart:
    """
    Shopping cart session.

    Every mutating operation returns a new Cart; the receiver is never
    altered. Items keep insertion order and unique ids.
    """
    id: str
    context_id: str
    items: Tuple[CartItem, ...]
    created_at: datetime
    expires_at: datetime

    def __post_init__(self):
        object.__setattr__(self, "items", tuple(self.items))
        if self.expires_at <= self.created_at:
            raise ValueError("expires_at must be later than created_at")
        seen = set()
        for item in self.items:
            if item.id in seen:
                raise DuplicateItemError(item.id)
            seen.add(item.id)

    @property
    def item_count(self) -> int:
        return len(self.items)

    def find_item(self, item_id: str) -> Optional[CartItem]:
        return next((item for item in self.items if item.id == item_id), None)

    def has_item(self, item_id: str) -> bool:
        return self.find_item(item_id) is not None

    def add_item(self, item: CartItem) -> "Cart":
        """Return a new cart with ``item`` appended."""
        if self.has_item(item.id):
            raise DuplicateItemError(item.id)
        return replace(self, items=self.items + (item,))

    def remove_item(self, item_id: str) -> "Cart":
        """Return a new cart without the item ``item_id``."""
        if not self.has_item(item_id):
            raise ItemNotFoundError(item_id)
        return replace(self, items=tuple(item for item in self.items if item.id != item_id))

    def total(self) -> float:
        return sum((item.line_total for item in self.items), 0)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if now is None:
            now = utcnow()
        return now > self.expires_at

    def to_dict(self) -> dict:
        """Convert to the cart JSON shape returned by the API."""
        return {
            "id": self.id,
            "contextId": self.context_id,
            "items": [item.to_dict() for item in self.items],
            "total": self.total(),
            "createdAt": to_iso(self.created_at),
            "expiresAt": to_iso(self.expires_at),
        }


@dataclass
class CartFactory:
    """Builds empty carts with fresh identifiers and a TTL-based expiry."""
    ttl_ms: int
    clock: Clock = field(default=utcnow)

    def __post_init__(self):
        if self.ttl_ms <= 0:
            raise ValueError("ttl_ms must be a positive number of milliseconds")

    def create_cart(self) -> Cart:
        now = self.clock()
        return Cart(
            id=str(uuid.uuid4()),
            context_id=str(uuid.uuid4()),
            items=(),
            created_at=now,
            expires_at=now + timedelta(milliseconds=self.ttl_ms),
        )
