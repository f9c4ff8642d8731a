"""
Cart API Pydantic Models

Request/response bodies for the cart endpoints. JSON keys are camelCase;
Python attributes are snake_case.
"""
from pydantic import BaseModel, ConfigDict, Field

from telecart.cart import CartItem


# ==================== REQUEST MODELS ====================

class AddItemRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, strict=True)

    id: str
    product_id: str = Field(alias="productId")
    name: str
    type: str
    price: float
    quantity: int

    def to_item(self) -> CartItem:
        """Build the domain item; field rules are enforced there."""
        return CartItem(
            id=self.id,
            product_id=self.product_id,
            name=self.name,
            type=self.type,
            price=self.price,
            quantity=self.quantity,
        )


class RemoveItemRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, strict=True)

    item_id: str = Field(alias="itemId", min_length=1)


# ==================== RESPONSE MODELS ====================

class CartItemResponse(BaseModel):
    id: str
    productId: str
    name: str
    type: str
    price: float
    quantity: int


class CartResponse(BaseModel):
    id: str
    contextId: str
    items: list[CartItemResponse]
    total: float
    createdAt: str
    expiresAt: str


class CartTotalResponse(BaseModel):
    cartId: str
    total: float
