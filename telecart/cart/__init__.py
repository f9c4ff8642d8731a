"""Cart package: models, storage, context mirror, expiry scheduler and service facade."""
from .context import ContextMirror, CustomerContext
from .models import TOTAL_EPSILON, Cart, CartFactory, CartItem, ItemType
from .scheduler import ExpiryScheduler
from .service import CartService, get_cart_service
from .storage import CartStore

__all__ = [
    "TOTAL_EPSILON",
    "CartItem",
    "Cart",
    "CartFactory",
    "ItemType",
    "CartStore",
    "ContextMirror",
    "CustomerContext",
    "ExpiryScheduler",
    "CartService",
    "get_cart_service",
]
