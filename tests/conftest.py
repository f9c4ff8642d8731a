"""Pytest configuration and fixtures"""
import os
from datetime import datetime, timedelta, timezone

import pytest

# Set test environment variables before the app module reads them
os.environ.setdefault("CART_EXPIRY_MS", "300000")
os.environ.setdefault("SWEEP_INTERVAL_MS", "0")
os.environ.setdefault("APP_ENV", "test")

from telecart.cart import CartItem, CartService  # noqa: E402

TTL_MS = 300000


class FakeClock:
    """Controllable clock; call it to read the current instant."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += timedelta(milliseconds=ms)


@pytest.fixture
def clock():
    """Fake clock starting at a fixed UTC instant"""
    return FakeClock()


@pytest.fixture
def service(clock):
    """Isolated CartService driven by the fake clock"""
    svc = CartService.build(TTL_MS, clock=clock)
    yield svc
    svc.shutdown()


@pytest.fixture
def phone_item():
    return CartItem(id="phone-1", product_id="iphone-15", name="iPhone 15", type="phone", price=999.99, quantity=1)


@pytest.fixture
def plan_item():
    return CartItem(id="plan-1", product_id="unlimited-5g", name="Unlimited 5G", type="plan", price=75, quantity=1)


@pytest.fixture
def accessory_item():
    return CartItem(id="accessory-1", product_id="case-15", name="Phone Case", type="accessory", price=29.99, quantity=2)


@pytest.fixture
def item_payload():
    """Sample JSON body for POST /cart/{id}/item"""
    return {
        "id": "item-1",
        "productId": "prod-1",
        "name": "iPhone 15",
        "type": "phone",
        "price": 999.99,
        "quantity": 1,
    }
