"""
Cart business rules.

CartService validates inputs, enforces the stock gate, shapes responses and
silently repairs carts whose lines point at deleted products. It is the only
cart component the HTTP layer talks to.

Response totals are always recomputed from the lines being returned, never
read from the stored ``Cart.total``.
"""

from typing import Any, Iterable, List, Optional, Tuple

from storefront.cart.cart_repository import CartRepository
from storefront.cart.errors import (
    CartNotFoundError,
    InsufficientStockError,
    InvalidUserError,
    ItemNotFoundInCartError,
    ProductIdRequiredError,
    ProductNotFoundError,
    QuantityMustBePositiveError,
    QuantityRequiredError,
)
from storefront.cart.product_repository import ProductRepository
from storefront.core.config import StorefrontConfig, get_config
from storefront.media.images import primary_image_url
from storefront.models import Cart, CartItem, Product
from storefront.schemas import (
    AddToCartRequest,
    CartItemResponse,
    CartLine,
    CartResponse,
    CartSummary,
    RemoveFromCartRequest,
    UpdateCartItemRequest,
)
from storefront.utils.logger import get_logger

logger = get_logger("cart.service")

_BOGUS_USER_IDS = ("", "undefined", "null")


def is_valid_user_id(user_id: Any) -> bool:
    """False when the auth layer handed over no usable id (None, blank, "undefined", "null")."""
    if user_id is None:
        return False
    return str(user_id).strip() not in _BOGUS_USER_IDS


def is_dangling_reference(item: Any, product: Optional[Product]) -> bool:
    """True when a cart line's product no longer exists in the catalog."""
    return product is None


def format_cart_item(item: Any, config: Optional[StorefrontConfig] = None) -> CartLine:
    """
    Format a populated cart line for display.

    Price is the live product price, or 0 while the product is out of stock
    (the line stays visible but does not count towards the total). A line whose
    product is not loaded yields a zeroed row.
    """
    product = getattr(item, "product", None)
    if product is None:
        return CartLine(productId=str(item.product_id), name="", price=0, image="", quantity=item.quantity)

    price = product.price if (product.stock or 0) > 0 else 0
    return CartLine(
        productId=str(product.id),
        name=product.name or "",
        price=price or 0,
        image=primary_image_url(product.images, config),
        quantity=item.quantity,
    )


def calculate_cart_totals(lines: Iterable[CartLine]) -> Tuple[float, int]:
    total = 0
    item_count = 0
    for line in lines:
        total += line.price * line.quantity
        item_count += line.quantity
    return total, item_count


class CartService:
    """Cart operations for a signed-in user."""

    def __init__(
        self,
        cart_repository: CartRepository,
        product_repository: ProductRepository,
        config: Optional[StorefrontConfig] = None,
    ):
        self.cart_repository = cart_repository
        self.product_repository = product_repository
        self.config = config or get_config()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def get_cart(self, user_id: str) -> CartResponse:
        self._require_user(user_id)
        logger.info("cart_service: method=get_cart user_id=%s", user_id)

        cart = self.cart_repository.find_by_user_id_with_populate(user_id)
        if cart is None:
            # Reads never create a cart row
            logger.info("cart_service: method=get_cart user_id=%s result=empty", user_id)
            return CartResponse(cart=CartSummary(items=[], totalAmount=0, itemCount=0))

        summary = self._summarize(cart)
        logger.info(
            "cart_service: method=get_cart user_id=%s result=success line_count=%s total=%s",
            user_id, len(summary.items), summary.total_amount,
        )
        return CartResponse(cart=summary)

    def add_to_cart(self, user_id: str, request: AddToCartRequest) -> CartItemResponse:
        self._require_user(user_id)
        product_id = request.product_id
        quantity = 1 if request.quantity is None else request.quantity

        if not product_id:
            raise ProductIdRequiredError()
        if quantity <= 0:
            raise QuantityMustBePositiveError()

        # Only this call's quantity is checked, not what is already in the cart
        product = self._require_stock(product_id, quantity)

        self.cart_repository.atomic_add_to_cart(
            user_id,
            str(product.id),
            product.name,
            product.price,
            primary_image_url(product.images, self.config) or self.config.placeholder_url,
            quantity,
        )
        logger.info("cart_service: method=add_to_cart user_id=%s product_id=%s qty=%s result=success", user_id, product_id, quantity)
        return self._respond(user_id, "Item added to cart")

    def update_cart_item(self, user_id: str, request: UpdateCartItemRequest) -> CartItemResponse:
        self._require_user(user_id)
        product_id = request.product_id
        quantity = request.quantity

        if not product_id:
            raise ProductIdRequiredError()
        # 0 is meaningful (remove), so check presence rather than truthiness
        if quantity is None:
            raise QuantityRequiredError()

        self._require_line(user_id, product_id)

        if quantity > 0:
            self._require_stock(product_id, quantity)

        cart = self.cart_repository.atomic_update_cart_item(user_id, product_id, quantity)
        if cart is None:
            raise CartNotFoundError()
        logger.info("cart_service: method=update_cart_item user_id=%s product_id=%s qty=%s result=success", user_id, product_id, quantity)
        return self._respond(user_id, "Cart updated")

    def remove_from_cart(self, user_id: str, request: RemoveFromCartRequest) -> CartItemResponse:
        self._require_user(user_id)
        product_id = request.product_id
        if not product_id:
            raise ProductIdRequiredError()

        self._require_line(user_id, product_id)

        cart = self.cart_repository.atomic_remove_from_cart(user_id, product_id)
        if cart is None:
            raise CartNotFoundError()
        logger.info("cart_service: method=remove_from_cart user_id=%s product_id=%s result=success", user_id, product_id)
        return self._respond(user_id, "Item removed from cart")

    def clear_cart(self, user_id: str) -> CartItemResponse:
        self._require_user(user_id)
        if self.cart_repository.find_by_user_id(user_id) is None:
            raise CartNotFoundError()

        cart = self.cart_repository.atomic_clear_cart(user_id)
        if cart is None:
            raise CartNotFoundError()
        logger.info("cart_service: method=clear_cart user_id=%s result=success", user_id)
        return self._respond(user_id, "Cart cleared")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _require_user(user_id: str) -> None:
        if not is_valid_user_id(user_id):
            logger.warning("cart_service: invalid user_id=%r", user_id)
            raise InvalidUserError()

    def _require_stock(self, product_id: str, quantity: int) -> Product:
        product = self.product_repository.find_by_id(product_id)
        if product is None:
            raise ProductNotFoundError()
        if (product.stock or 0) < quantity:
            logger.info(
                "cart_service: insufficient_stock product_id=%s requested=%s available=%s",
                product_id, quantity, product.stock,
            )
            raise InsufficientStockError()
        return product

    def _require_line(self, user_id: str, product_id: str) -> Cart:
        """Cart and line must exist; checked before any product lookup."""
        cart = self.cart_repository.find_by_user_id(user_id)
        if cart is None:
            raise CartNotFoundError()
        if not any(str(item.product_id) == str(product_id) for item in (cart.items or [])):
            raise ItemNotFoundInCartError()
        return cart

    def _respond(self, user_id: str, message: str) -> CartItemResponse:
        cart = self.cart_repository.find_by_user_id_with_populate(user_id)
        if cart is None:
            return CartItemResponse(message=message, cart=CartSummary())
        return CartItemResponse(message=message, cart=self._summarize(cart))

    def _summarize(self, cart: Cart) -> CartSummary:
        """
        Format the populated cart, dropping (and persisting the removal of)
        lines whose product has been deleted.
        """
        kept: List[CartItem] = []
        lines: List[CartLine] = []
        for item in list(cart.items or []):
            if is_dangling_reference(item, item.product):
                logger.info(
                    "cart_service: pruning dangling line user_id=%s product_id=%s",
                    cart.user_id, item.product_id,
                )
                continue
            kept.append(item)
            lines.append(format_cart_item(item, self.config))

        total, item_count = calculate_cart_totals(lines)

        if len(kept) != len(cart.items or []):
            # Stored totals stay snapshot-based; save() recomputes them
            cart.items = kept
            self.cart_repository.save(cart)

        return CartSummary(items=lines, totalAmount=total, itemCount=item_count)
