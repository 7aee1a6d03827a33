"""
Pydantic v2 schemas for cart requests and responses.

Wire names are camelCase (``productId``, ``totalAmount``) to match the
storefront SPA; Python code uses the snake_case attribute names. Request
schemas use extra="forbid" to reject unknown fields. Required-ness of
``productId``/``quantity`` is enforced by the cart service, not here, so the
client receives the service's fixed error messages.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


#
# Request Schemas
#

class AddToCartRequest(_WireModel):
    """Add a product to the signed-in user's cart (quantity defaults to 1)."""
    model_config = ConfigDict(extra="forbid")

    product_id: Optional[str] = Field(None, alias="productId", description="Product to add")
    quantity: Optional[int] = Field(1, description="Units to add; must be > 0")


class UpdateCartItemRequest(_WireModel):
    """Set a cart line to an exact quantity; 0 removes the line."""
    model_config = ConfigDict(extra="forbid")

    product_id: Optional[str] = Field(None, alias="productId", description="Product whose line to update")
    quantity: Optional[int] = Field(None, description="New exact quantity (0 = remove)")


class RemoveFromCartRequest(_WireModel):
    model_config = ConfigDict(extra="forbid")

    product_id: Optional[str] = Field(None, alias="productId", description="Product whose line to remove")


#
# Response Schemas
#

class CartLine(_WireModel):
    """One formatted cart line as shown to the customer."""
    product_id: str = Field(..., alias="productId")
    name: str = Field("", description="Live product name; empty when the product is gone")
    price: float = Field(0, description="Live unit price; 0 when the product is out of stock")
    image: str = Field("", description="Thumbnail URL resolved from the product's first image")
    quantity: int = Field(..., description="Units in the cart")


class CartSummary(_WireModel):
    items: List[CartLine] = Field(default_factory=list)
    total_amount: float = Field(0, alias="totalAmount", description="Sum of price x quantity over items")
    item_count: int = Field(0, alias="itemCount", description="Sum of quantities over items")


class CartResponse(_WireModel):
    """GET /api/cart envelope."""
    cart: CartSummary


class CartItemResponse(_WireModel):
    """Envelope for every cart mutation."""
    message: str
    cart: CartSummary


class ErrorResponse(BaseModel):
    message: str
