"""
External customer-context mirror.

Simulates the remote CRM that keeps a parallel copy of every cart's line
items. Each context runs its own expiry clock, set when the context is
created, so it may expire slightly before or after the cart it mirrors.
Expired contexts are evicted lazily on the next access.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from telecart.errors import (
    ContextExpiredError,
    ContextNotFoundError,
    DuplicateContextError,
    DuplicateItemError,
    ItemNotFoundError,
)
from telecart.logging import get_logger, sanitize_id_for_logging

from .models import CartItem, Clock, utcnow

logger = get_logger(__name__)

SOURCE = "context"


@dataclass
class CustomerContext:
    """Mirrored cart state held by the external system."""
    context_id: str
    cart_id: str
    created_at: datetime
    expires_at: datetime
    items: Dict[str, CartItem] = field(default_factory=dict)

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def total(self) -> float:
        return sum((item.line_total for item in self.items.values()), 0)


class ContextMirror:
    """Keyed store of customer contexts with per-context TTL."""

    def __init__(self, ttl_ms: int, clock: Clock = utcnow):
        if ttl_ms <= 0:
            raise ValueError("ttl_ms must be a positive number of milliseconds")
        self._ttl = timedelta(milliseconds=ttl_ms)
        self._clock = clock
        self._contexts: Dict[str, CustomerContext] = {}

    def create_context(self, cart_id: str, context_id: Optional[str] = None) -> str:
        """
        Allocate a context for ``cart_id`` and return its id.

        The context is keyed by ``context_id`` when the caller supplies a
        correlation key; otherwise the key is derived from ``cart_id``.
        """
        if context_id is None:
            context_id = cart_id
        now = self._clock()
        existing = self._contexts.get(context_id)
        if existing is not None and not existing.is_expired(now):
            raise DuplicateContextError(context_id)

        self._contexts[context_id] = CustomerContext(
            context_id=context_id,
            cart_id=cart_id,
            created_at=now,
            expires_at=now + self._ttl,
        )
        logger.debug(f"Context {sanitize_id_for_logging(context_id)} created")
        return context_id

    def add_item(self, context_id: str, item: CartItem) -> None:
        context = self._get_live_context(context_id)
        if item.id in context.items:
            raise DuplicateItemError(item.id, source=SOURCE)
        context.items[item.id] = item

    def remove_item(self, context_id: str, item_id: str) -> None:
        context = self._get_live_context(context_id)
        if item_id not in context.items:
            raise ItemNotFoundError(item_id, source=SOURCE)
        del context.items[item_id]

    def total(self, context_id: str) -> float:
        return self._get_live_context(context_id).total()

    def exists(self, context_id: str) -> bool:
        """True if the context is present and live. Evicts it if expired."""
        context = self._contexts.get(context_id)
        if context is None:
            return False
        if context.is_expired(self._clock()):
            self._evict(context_id)
            return False
        return True

    def delete_context(self, context_id: str) -> None:
        """Remove a context; absent ids are ignored."""
        self._contexts.pop(context_id, None)

    def get_context(self, context_id: str) -> CustomerContext:
        """Live context lookup with the same not-found/expired rules as mutations."""
        return self._get_live_context(context_id)

    def all(self) -> List[CustomerContext]:
        return list(self._contexts.values())

    def clear(self) -> None:
        self._contexts.clear()

    def __len__(self) -> int:
        return len(self._contexts)

    def _get_live_context(self, context_id: str) -> CustomerContext:
        context = self._contexts.get(context_id)
        if context is None:
            raise ContextNotFoundError(context_id)
        if context.is_expired(self._clock()):
            self._evict(context_id)
            raise ContextExpiredError(context_id)
        return context

    def _evict(self, context_id: str) -> None:
        self._contexts.pop(context_id, None)
        logger.info(f"Context {sanitize_id_for_logging(context_id)} expired and was evicted")
