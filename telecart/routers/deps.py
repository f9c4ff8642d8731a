"""
Shared Dependencies for Routers

The cart service lives on ``app.state`` so each application instance (and
each test app) owns its own stores and timers.
"""
from typing import TYPE_CHECKING

from fastapi import Request

if TYPE_CHECKING:
    from telecart.cart import CartService


def get_cart_service(request: Request) -> "CartService":
    """Resolve the CartService bound to the running application."""
    return request.app.state.cart_service
