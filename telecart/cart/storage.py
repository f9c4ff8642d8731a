"""In-memory cart store. Knows nothing about expiry."""
from typing import Dict, List, Optional

from .models import Cart


class CartStore:
    """Authoritative keyed collection of carts."""

    def __init__(self):
        self._carts: Dict[str, Cart] = {}

    def put(self, cart: Cart) -> None:
        """Insert or overwrite by cart id."""
        self._carts[cart.id] = cart

    def get(self, cart_id: str) -> Optional[Cart]:
        return self._carts.get(cart_id)

    def delete(self, cart_id: str) -> None:
        """Remove a cart; absent ids are ignored."""
        self._carts.pop(cart_id, None)

    def exists(self, cart_id: str) -> bool:
        return cart_id in self._carts

    def all(self) -> List[Cart]:
        """Snapshot of every stored cart."""
        return list(self._carts.values())

    def clear(self) -> None:
        self._carts.clear()

    def __len__(self) -> int:
        return len(self._carts)
