"""
Cart Error Kinds

Every failure the cart layers can produce is a CartError carrying an
explicit CartErrorKind. Callers branch on ``error.kind`` rather than on the
exception class; the named subclasses only pin the kind and build the
message.
"""
from enum import Enum
from typing import Optional


# Message templates (shared by domain, mirror and transport)
ERROR_CART_NOT_FOUND = "Cart with ID '{cart_id}' not found"
ERROR_CART_EXPIRED = "Cart with ID '{cart_id}' has expired"
ERROR_ITEM_EXISTS = "Item with ID '{item_id}' already exists in {where}"
ERROR_ITEM_NOT_FOUND = "Item with ID '{item_id}' not found in {where}"
ERROR_CONTEXT_NOT_FOUND = "Context '{context_id}' not found"
ERROR_CONTEXT_EXPIRED = "Context '{context_id}' has expired"
ERROR_CONTEXT_EXISTS = "Context '{context_id}' already exists"

# Transport errors
ERROR_MISSING_ITEM_FIELDS = "Missing required fields: id, productId, name, type, price, quantity"
ERROR_MISSING_ITEM_ID = "Missing required field: itemId"
ERROR_INTERNAL = "Internal server error"


class CartErrorKind(str, Enum):
    """Discriminator for every recoverable cart failure."""

    CART_NOT_FOUND = "cart_not_found"
    CART_EXPIRED = "cart_expired"
    DUPLICATE_ITEM = "duplicate_item"
    ITEM_NOT_FOUND = "item_not_found"
    CONTEXT_NOT_FOUND = "context_not_found"
    CONTEXT_EXPIRED = "context_expired"
    DUPLICATE_CONTEXT = "duplicate_context"
    VALIDATION = "validation"


# Kinds raised by the external context mirror
CONTEXT_ERROR_KINDS = frozenset({
    CartErrorKind.CONTEXT_NOT_FOUND,
    CartErrorKind.CONTEXT_EXPIRED,
    CartErrorKind.DUPLICATE_CONTEXT,
})

# No kind ever maps to 2xx
HTTP_STATUS_BY_KIND: dict[CartErrorKind, int] = {
    CartErrorKind.CART_NOT_FOUND: 404,
    CartErrorKind.CART_EXPIRED: 410,
    CartErrorKind.DUPLICATE_ITEM: 400,
    CartErrorKind.ITEM_NOT_FOUND: 400,
    CartErrorKind.CONTEXT_NOT_FOUND: 400,
    CartErrorKind.CONTEXT_EXPIRED: 400,
    CartErrorKind.DUPLICATE_CONTEXT: 400,
    CartErrorKind.VALIDATION: 400,
}


class CartError(Exception):
    """Base error: a kind, a human-readable message and the layer it came from."""

    def __init__(self, kind: CartErrorKind, message: str, source: str = "cart"):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.source = source

    @property
    def http_status(self) -> int:
        return HTTP_STATUS_BY_KIND[self.kind]

    @property
    def is_context_error(self) -> bool:
        """True for failures reported by the external context mirror."""
        return self.source == "context" or self.kind in CONTEXT_ERROR_KINDS

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, message={self.message!r})"


class CartNotFoundError(CartError):
    def __init__(self, cart_id: str):
        super().__init__(CartErrorKind.CART_NOT_FOUND, ERROR_CART_NOT_FOUND.format(cart_id=cart_id))
        self.cart_id = cart_id


class CartExpiredError(CartError):
    def __init__(self, cart_id: str):
        super().__init__(CartErrorKind.CART_EXPIRED, ERROR_CART_EXPIRED.format(cart_id=cart_id))
        self.cart_id = cart_id


class DuplicateItemError(CartError):
    def __init__(self, item_id: str, source: str = "cart"):
        super().__init__(
            CartErrorKind.DUPLICATE_ITEM,
            ERROR_ITEM_EXISTS.format(item_id=item_id, where=source),
            source=source,
        )
        self.item_id = item_id


class ItemNotFoundError(CartError):
    def __init__(self, item_id: str, source: str = "cart"):
        super().__init__(
            CartErrorKind.ITEM_NOT_FOUND,
            ERROR_ITEM_NOT_FOUND.format(item_id=item_id, where=source),
            source=source,
        )
        self.item_id = item_id


class ContextNotFoundError(CartError):
    def __init__(self, context_id: str):
        super().__init__(
            CartErrorKind.CONTEXT_NOT_FOUND,
            ERROR_CONTEXT_NOT_FOUND.format(context_id=context_id),
            source="context",
        )
        self.context_id = context_id


class ContextExpiredError(CartError):
    def __init__(self, context_id: str):
        super().__init__(
            CartErrorKind.CONTEXT_EXPIRED,
            ERROR_CONTEXT_EXPIRED.format(context_id=context_id),
            source="context",
        )
        self.context_id = context_id


class DuplicateContextError(CartError):
    def __init__(self, context_id: str):
        super().__init__(
            CartErrorKind.DUPLICATE_CONTEXT,
            ERROR_CONTEXT_EXISTS.format(context_id=context_id),
            source="context",
        )
        self.context_id = context_id


class ValidationError(CartError):
    """Malformed CartItem field."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(CartErrorKind.VALIDATION, message)
        self.field = field


__all__ = [
    "CartErrorKind",
    "CONTEXT_ERROR_KINDS",
    "HTTP_STATUS_BY_KIND",
    "CartError",
    "CartNotFoundError",
    "CartExpiredError",
    "DuplicateItemError",
    "ItemNotFoundError",
    "ContextNotFoundError",
    "ContextExpiredError",
    "DuplicateContextError",
    "ValidationError",
    "ERROR_MISSING_ITEM_FIELDS",
    "ERROR_MISSING_ITEM_ID",
    "ERROR_INTERNAL",
]
