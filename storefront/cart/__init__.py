"""
Cart domain: repositories, business rules and HTTP endpoints.
"""
from storefront.cart.cart_repository import CartRepository
from storefront.cart.errors import CartError
from storefront.cart.product_repository import ProductRepository
from storefront.cart.service import CartService, format_cart_item, is_dangling_reference

__all__ = [
    "CartError",
    "CartRepository",
    "CartService",
    "ProductRepository",
    "format_cart_item",
    "is_dangling_reference",
]
