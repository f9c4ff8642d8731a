"""
Expiry scheduler: one timer per cart on the asyncio event loop.

Timers are plain ``loop.call_later`` handles, so a fired teardown runs on the
same loop as every CartService coroutine and never interleaves with one.
"""
import asyncio
from dataclasses import dataclass
from typing import Dict, Optional

from telecart.logging import get_logger, sanitize_id_for_logging

from .context import ContextMirror
from .storage import CartStore

logger = get_logger(__name__)


@dataclass
class _ArmedTimer:
    context_id: str
    handle: asyncio.TimerHandle


class ExpiryScheduler:
    """Arms, re-arms and disarms per-cart expiry timers."""

    def __init__(
        self,
        store: CartStore,
        mirror: ContextMirror,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self._store = store
        self._mirror = mirror
        self._loop = loop
        self._timers: Dict[str, _ArmedTimer] = {}

    @property
    def pending(self) -> int:
        """Number of armed timers."""
        return len(self._timers)

    def is_scheduled(self, cart_id: str) -> bool:
        return cart_id in self._timers

    def schedule(self, cart_id: str, context_id: str, ttl_ms: int) -> None:
        """Arm the timer for ``cart_id``, replacing any armed one."""
        self.cancel(cart_id)
        loop = self._loop or asyncio.get_running_loop()
        handle = loop.call_later(ttl_ms / 1000, self._expire, cart_id, context_id)
        self._timers[cart_id] = _ArmedTimer(context_id=context_id, handle=handle)

    def cancel(self, cart_id: str) -> None:
        """Disarm the timer for ``cart_id`` without running teardown."""
        timer = self._timers.pop(cart_id, None)
        if timer is not None:
            timer.handle.cancel()

    def cancel_all(self) -> None:
        """Disarm every timer (shutdown / test teardown)."""
        for timer in self._timers.values():
            timer.handle.cancel()
        self._timers.clear()

    def _expire(self, cart_id: str, context_id: str) -> None:
        # Store first: once the cart is gone readers report not-found
        # before they could see the orphaned context.
        try:
            self._store.delete(cart_id)
            self._mirror.delete_context(context_id)
        except Exception as e:
            logger.error(f"Failed to expire cart {sanitize_id_for_logging(cart_id)}: {e}", exc_info=True)
        finally:
            self._timers.pop(cart_id, None)
        logger.info(f"Cart {sanitize_id_for_logging(cart_id)} expired by timer")
