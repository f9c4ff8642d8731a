"""
Tests for CartService orchestration
"""
import asyncio
import logging
from datetime import timedelta

import pytest

from telecart.cart import (
    CartFactory,
    CartItem,
    CartService,
    CartStore,
    ContextMirror,
    ExpiryScheduler,
    get_cart_service,
)
from telecart.config import get_settings
from telecart.errors import (
    CartErrorKind,
    CartExpiredError,
    CartNotFoundError,
    ContextExpiredError,
    DuplicateContextError,
    DuplicateItemError,
    ItemNotFoundError,
)

TTL_MS = 300000


def item(item_id, price=10.0, quantity=1):
    return CartItem(id=item_id, product_id=f"prod-{item_id}", name=item_id, type="accessory", price=price, quantity=quantity)


class TestCreateCart:

    @pytest.mark.asyncio
    async def test_create_wires_all_stores(self, service, clock):
        cart = await service.create_cart()

        assert service.store.get(cart.id) is cart
        assert service.mirror.exists(cart.context_id)
        assert service.scheduler.is_scheduled(cart.id)
        assert cart.items == ()
        assert cart.context_id != cart.id
        assert cart.expires_at - cart.created_at == timedelta(milliseconds=TTL_MS)

    @pytest.mark.asyncio
    async def test_context_failure_leaves_no_partial_state(self, service):
        collision = service.factory.create_cart()
        service.factory.create_cart = lambda: collision
        service.mirror.create_context("someone-else", collision.context_id)

        with pytest.raises(DuplicateContextError):
            await service.create_cart()

        assert not service.store.exists(collision.id)
        assert not service.scheduler.is_scheduled(collision.id)


class TestItems:

    @pytest.mark.asyncio
    async def test_end_to_end_totals(self, service, phone_item, plan_item, accessory_item):
        cart = await service.create_cart()

        await service.add_item(cart.id, phone_item)
        await service.add_item(cart.id, plan_item)
        await service.add_item(cart.id, accessory_item)
        assert await service.get_total(cart.id) == pytest.approx(1134.97, abs=0.01)

        await service.remove_item(cart.id, "accessory-1")
        assert await service.get_total(cart.id) == pytest.approx(1074.99, abs=0.01)

    @pytest.mark.asyncio
    async def test_mirror_tracks_cart_total(self, service):
        cart = await service.create_cart()

        for i in range(5):
            cart = await service.add_item(cart.id, item(f"i{i}", price=1.1 * (i + 1), quantity=i + 1))
        cart = await service.remove_item(cart.id, "i2")
        cart = await service.remove_item(cart.id, "i0")

        assert service.mirror.total(cart.context_id) == pytest.approx(cart.total(), abs=0.01)
        assert [i.id for i in cart.items] == ["i1", "i3", "i4"]

    @pytest.mark.asyncio
    async def test_add_returns_new_cart_and_persists(self, service):
        original = await service.create_cart()

        updated = await service.add_item(original.id, item("a"))

        assert original.items == ()
        assert service.store.get(original.id) is updated

    @pytest.mark.asyncio
    async def test_duplicate_add(self, service):
        cart = await service.create_cart()
        await service.add_item(cart.id, item("dup"))

        with pytest.raises(DuplicateItemError) as exc_info:
            await service.add_item(cart.id, item("dup", price=50))

        assert exc_info.value.kind is CartErrorKind.DUPLICATE_ITEM
        assert exc_info.value.http_status == 400
        assert service.store.get(cart.id).item_count == 1

    @pytest.mark.asyncio
    async def test_remove_missing_item(self, service):
        cart = await service.create_cart()

        with pytest.raises(ItemNotFoundError):
            await service.remove_item(cart.id, "ghost")

    @pytest.mark.asyncio
    async def test_mirror_failure_leaves_cart_untouched(self, clock):
        # Context clock runs one second ahead of the cart's
        store = CartStore()
        mirror = ContextMirror(TTL_MS - 1000, clock=clock)
        service = CartService(
            store=store,
            mirror=mirror,
            factory=CartFactory(TTL_MS, clock=clock),
            scheduler=ExpiryScheduler(store, mirror),
            ttl_ms=TTL_MS,
            clock=clock,
        )
        try:
            cart = await service.create_cart()
            clock.advance(TTL_MS - 500)

            with pytest.raises(ContextExpiredError):
                await service.add_item(cart.id, item("late"))

            assert store.get(cart.id) is cart
            assert not mirror.exists(cart.context_id)
        finally:
            service.shutdown()

    @pytest.mark.asyncio
    async def test_local_failure_after_mirror_write_propagates(self, service, caplog):
        cart = await service.create_cart()
        # Local cart gains an item the context never saw
        service.store.put(cart.add_item(item("local-only")))

        with caplog.at_level(logging.ERROR, logger="telecart.cart.service"):
            with pytest.raises(DuplicateItemError) as exc_info:
                await service.add_item(cart.id, item("local-only"))

        assert exc_info.value.source == "cart"
        assert service.mirror.total(cart.context_id) == 10.0
        assert "Context ahead of cart" in caplog.text


class TestLookups:

    @pytest.mark.asyncio
    async def test_unknown_cart_is_not_found_everywhere(self, service):
        calls = [
            service.get_cart("missing"),
            service.get_total("missing"),
            service.add_item("missing", item("a")),
            service.remove_item("missing", "a"),
            service.delete_cart("missing"),
        ]
        for call in calls:
            with pytest.raises(CartNotFoundError) as exc_info:
                await call
            assert exc_info.value.kind is CartErrorKind.CART_NOT_FOUND

    @pytest.mark.asyncio
    async def test_get_total_empty_cart(self, service):
        cart = await service.create_cart()

        assert await service.get_total(cart.id) == 0

    @pytest.mark.asyncio
    async def test_total_mismatch_logged_local_wins(self, service, caplog):
        cart = await service.create_cart()
        cart = await service.add_item(cart.id, item("a", price=10))
        service.mirror.add_item(cart.context_id, item("extra", price=5))

        with caplog.at_level(logging.WARNING, logger="telecart.cart.service"):
            total = await service.get_total(cart.id)

        assert total == 10
        assert "Total mismatch" in caplog.text

    @pytest.mark.asyncio
    async def test_small_difference_within_epsilon_not_logged(self, service, caplog):
        cart = await service.create_cart()
        cart = await service.add_item(cart.id, item("a", price=10))
        service.mirror.add_item(cart.context_id, item("cent", price=0.005))

        with caplog.at_level(logging.WARNING, logger="telecart.cart.service"):
            await service.get_total(cart.id)

        assert "Total mismatch" not in caplog.text


class TestExpiry:

    @pytest.mark.asyncio
    async def test_lazy_expiry_rejects_and_cleans_up(self, service, clock):
        cart = await service.create_cart()
        clock.advance(TTL_MS + 1)

        with pytest.raises(CartExpiredError) as exc_info:
            await service.get_cart(cart.id)

        assert exc_info.value.http_status == 410
        assert not service.store.exists(cart.id)
        assert service.mirror.all() == []
        assert not service.scheduler.is_scheduled(cart.id)

        with pytest.raises(CartNotFoundError):
            await service.get_cart(cart.id)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("operation", ["get_cart", "get_total", "add_item", "remove_item"])
    async def test_every_read_path_checks_expiry(self, service, clock, operation):
        cart = await service.create_cart()
        clock.advance(TTL_MS + 1)
        args = {
            "get_cart": (cart.id,),
            "get_total": (cart.id,),
            "add_item": (cart.id, item("a")),
            "remove_item": (cart.id, "a"),
        }[operation]

        with pytest.raises(CartExpiredError):
            await getattr(service, operation)(*args)

    @pytest.mark.asyncio
    async def test_not_expired_at_exact_deadline(self, service, clock):
        cart = await service.create_cart()
        clock.advance(TTL_MS)

        assert await service.get_cart(cart.id) is cart

    @pytest.mark.asyncio
    async def test_timer_reaps_both_stores(self):
        service = CartService.build(30)
        try:
            cart = await service.create_cart()
            await service.add_item(cart.id, item("a"))

            await asyncio.sleep(0.15)

            assert not service.store.exists(cart.id)
            assert not service.mirror.exists(cart.context_id)
            with pytest.raises(CartNotFoundError):
                await service.get_cart(cart.id)
        finally:
            service.shutdown()

    @pytest.mark.asyncio
    async def test_sweep_expired(self, service, clock):
        old = await service.create_cart()
        clock.advance(1000)
        young = await service.create_cart()
        clock.advance(TTL_MS - 500)

        reaped = await service.sweep_expired()

        assert reaped == 1
        assert not service.store.exists(old.id)
        assert not service.scheduler.is_scheduled(old.id)
        assert service.store.exists(young.id)
        assert await service.sweep_expired() == 0


class TestDeleteAndShutdown:

    @pytest.mark.asyncio
    async def test_delete_cart(self, service):
        cart = await service.create_cart()

        await service.delete_cart(cart.id)

        assert not service.store.exists(cart.id)
        assert not service.mirror.exists(cart.context_id)
        assert not service.scheduler.is_scheduled(cart.id)

    @pytest.mark.asyncio
    async def test_shutdown_disarms_timers(self, service):
        await service.create_cart()
        await service.create_cart()

        service.shutdown()

        assert service.scheduler.pending == 0
        assert len(service.store) == 2


class TestProcessSingleton:

    def test_get_cart_service_is_shared_and_uses_settings(self):
        first = get_cart_service()

        assert get_cart_service() is first
        assert first.ttl_ms == get_settings().cart_expiry_ms
