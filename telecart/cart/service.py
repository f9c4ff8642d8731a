"""Cart service: sequences every mutation across store, mirror and scheduler."""
from typing import Optional

from telecart.config import get_settings
from telecart.errors import CartError, CartExpiredError, CartNotFoundError
from telecart.logging import get_logger, sanitize_id_for_logging

from .context import ContextMirror
from .models import Cart, CartFactory, CartItem, Clock, totals_match, utcnow
from .scheduler import ExpiryScheduler
from .storage import CartStore

logger = get_logger(__name__)


class CartService:
    """
    Orchestrates cart sessions.

    Features:
    - Mirror-first writes: the external context is updated before the local
      cart, so a mirror failure never leaves a local-only item
    - Per-cart expiry timers plus lazy expiry checks on every read
    - Periodic sweep for carts whose timers have not fired yet

    Steps of each operation run strictly in order. A failing step raises its
    CartError unchanged after any cleanup the failure implies.
    """

    def __init__(
        self,
        store: CartStore,
        mirror: ContextMirror,
        factory: CartFactory,
        scheduler: ExpiryScheduler,
        ttl_ms: int,
        clock: Clock = utcnow,
    ):
        self.store = store
        self.mirror = mirror
        self.factory = factory
        self.scheduler = scheduler
        self.ttl_ms = ttl_ms
        self._clock = clock

    @classmethod
    def build(cls, ttl_ms: int, clock: Clock = utcnow) -> "CartService":
        """Wire a service with fresh, isolated collaborators."""
        store = CartStore()
        mirror = ContextMirror(ttl_ms, clock=clock)
        return cls(
            store=store,
            mirror=mirror,
            factory=CartFactory(ttl_ms, clock=clock),
            scheduler=ExpiryScheduler(store, mirror),
            ttl_ms=ttl_ms,
            clock=clock,
        )

    async def create_cart(self) -> Cart:
        """Create an empty cart, its context and its expiry timer."""
        cart = self.factory.create_cart()
        self.mirror.create_context(cart.id, cart.context_id)
        self.store.put(cart)
        self.scheduler.schedule(cart.id, cart.context_id, self.ttl_ms)
        logger.info(f"Cart {sanitize_id_for_logging(cart.id)} created, expires at {cart.expires_at.isoformat()}")
        return cart

    async def add_item(self, cart_id: str, item: CartItem) -> Cart:
        """Add an item to the context first, then to the cart."""
        cart = self._get_valid_cart(cart_id)
        self.mirror.add_item(cart.context_id, item)
        updated = self._apply_locally(cart, lambda c: c.add_item(item), "add", item.id)
        logger.debug(f"Item {sanitize_id_for_logging(item.id)} added to cart {sanitize_id_for_logging(cart_id)}")
        return updated

    async def remove_item(self, cart_id: str, item_id: str) -> Cart:
        """Remove an item from the context first, then from the cart."""
        cart = self._get_valid_cart(cart_id)
        self.mirror.remove_item(cart.context_id, item_id)
        updated = self._apply_locally(cart, lambda c: c.remove_item(item_id), "remove", item_id)
        logger.debug(f"Item {sanitize_id_for_logging(item_id)} removed from cart {sanitize_id_for_logging(cart_id)}")
        return updated

    async def get_cart(self, cart_id: str) -> Cart:
        return self._get_valid_cart(cart_id)

    async def get_total(self, cart_id: str) -> float:
        """
        Local total of the cart.

        The mirror total is computed as a consistency check; a difference
        above TOTAL_EPSILON is logged but the local total is returned.
        """
        cart = self._get_valid_cart(cart_id)
        local_total = cart.total()
        mirror_total = self.mirror.total(cart.context_id)
        if not totals_match(local_total, mirror_total):
            logger.warning(
                f"Total mismatch for cart {sanitize_id_for_logging(cart_id)}: "
                f"local={local_total}, context={mirror_total}"
            )
        return local_total

    async def delete_cart(self, cart_id: str) -> None:
        """Destroy a live cart together with its context and timer."""
        cart = self._get_valid_cart(cart_id)
        self._teardown(cart)
        logger.info(f"Cart {sanitize_id_for_logging(cart_id)} deleted")

    async def sweep_expired(self) -> int:
        """Reap every stored cart whose expiry has passed. Returns the count."""
        now = self._clock()
        expired = [cart for cart in self.store.all() if cart.is_expired(now)]
        for cart in expired:
            self._teardown(cart)
        if expired:
            logger.info(f"Expiry sweep removed {len(expired)} cart(s)")
        return len(expired)

    def shutdown(self) -> None:
        """Disarm all timers. Stored carts are left as they are."""
        self.scheduler.cancel_all()

    def _get_valid_cart(self, cart_id: str) -> Cart:
        cart = self.store.get(cart_id)
        if cart is None:
            raise CartNotFoundError(cart_id)

        # The timer may lag behind the wall clock
        if cart.is_expired(self._clock()):
            self._teardown(cart)
            logger.info(f"Cart {sanitize_id_for_logging(cart_id)} expired on access")
            raise CartExpiredError(cart_id)

        return cart

    def _teardown(self, cart: Cart) -> None:
        self.store.delete(cart.id)
        self.mirror.delete_context(cart.context_id)
        self.scheduler.cancel(cart.id)

    def _apply_locally(self, cart: Cart, change, action: str, item_id: str) -> Cart:
        try:
            updated = change(cart)
            self.store.put(updated)
        except CartError as e:
            # Mirror already accepted the change; nothing compensates it
            logger.error(
                f"Context ahead of cart {sanitize_id_for_logging(cart.id)} after failed local {action} "
                f"of item {sanitize_id_for_logging(item_id)}: {e.message}"
            )
            raise
        return updated


# Singleton instance
_cart_service: Optional[CartService] = None


def get_cart_service() -> CartService:
    """Get CartService singleton configured from settings."""
    global _cart_service
    if _cart_service is None:
        _cart_service = CartService.build(get_settings().cart_expiry_ms)
    return _cart_service
