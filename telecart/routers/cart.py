"""
Cart Router

Thin HTTP layer over CartService. CartError subclasses propagate to the
application-level handler, which maps each error kind to a status code;
anything else becomes a 500 carrying the original message.
"""
from fastapi import APIRouter, Depends, HTTPException, Response

from telecart.cart import CartService
from telecart.errors import ERROR_INTERNAL, CartError
from telecart.logging import get_logger

from .deps import get_cart_service
from .models import AddItemRequest, CartResponse, CartTotalResponse, RemoveItemRequest

logger = get_logger(__name__)

router = APIRouter(tags=["cart"])


def _internal_error(action: str, e: Exception) -> HTTPException:
    logger.error(f"Failed to {action}: {e}", exc_info=True)
    return HTTPException(status_code=500, detail={"error": ERROR_INTERNAL, "message": str(e)})


@router.post("/cart", status_code=201, response_model=CartResponse)
async def create_cart(service: CartService = Depends(get_cart_service)):
    """Create a new empty cart."""
    try:
        cart = await service.create_cart()
    except CartError:
        raise
    except Exception as e:
        raise _internal_error("create cart", e)
    return cart.to_dict()


@router.post("/cart/{cart_id}/item", response_model=CartResponse)
async def add_cart_item(
    cart_id: str,
    request: AddItemRequest,
    service: CartService = Depends(get_cart_service),
):
    """Add an item to the cart (mirrored to the customer context)."""
    try:
        cart = await service.add_item(cart_id, request.to_item())
    except CartError:
        raise
    except Exception as e:
        raise _internal_error("add item to cart", e)
    return cart.to_dict()


@router.delete("/cart/{cart_id}/item", response_model=CartResponse)
async def remove_cart_item(
    cart_id: str,
    request: RemoveItemRequest,
    service: CartService = Depends(get_cart_service),
):
    """Remove an item from the cart."""
    try:
        cart = await service.remove_item(cart_id, request.item_id)
    except CartError:
        raise
    except Exception as e:
        raise _internal_error("remove cart item", e)
    return cart.to_dict()


@router.get("/cart/{cart_id}", response_model=CartResponse)
async def get_cart(cart_id: str, service: CartService = Depends(get_cart_service)):
    """Get a live cart."""
    try:
        cart = await service.get_cart(cart_id)
    except CartError:
        raise
    except Exception as e:
        raise _internal_error("retrieve cart", e)
    return cart.to_dict()


@router.get("/cart/{cart_id}/total", response_model=CartTotalResponse)
async def get_cart_total(cart_id: str, service: CartService = Depends(get_cart_service)):
    """Get the cart total."""
    try:
        total = await service.get_total(cart_id)
    except CartError:
        raise
    except Exception as e:
        raise _internal_error("calculate cart total", e)
    return {"cartId": cart_id, "total": total}


@router.delete("/cart/{cart_id}", status_code=204)
async def delete_cart(cart_id: str, service: CartService = Depends(get_cart_service)):
    """Destroy a cart and its customer context."""
    try:
        await service.delete_cart(cart_id)
    except CartError:
        raise
    except Exception as e:
        raise _internal_error("delete cart", e)
    return Response(status_code=204)
