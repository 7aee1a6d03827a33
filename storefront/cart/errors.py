"""
Cart error taxonomy.

Each error carries a fixed, client-facing message. HTTP status mapping is done
in one place, the cart controller.
"""


class CartError(Exception):
    """Base class for expected cart failures."""
    message = "Cart operation failed"

    def __init__(self, message: str = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class InvalidUserError(CartError):
    """Upstream auth handed us an unusable user id; a caller bug, not user error."""
    message = "Invalid user identifier"


class CartValidationError(CartError):
    """Malformed client input."""


class ProductIdRequiredError(CartValidationError):
    message = "Product ID is required"


class QuantityMustBePositiveError(CartValidationError):
    message = "Quantity must be greater than 0"


class QuantityRequiredError(CartValidationError):
    message = "Quantity is required"


class InsufficientStockError(CartError):
    """Live stock cannot cover the requested quantity."""
    message = "Insufficient stock"


class EntityNotFoundError(CartError):
    """A referenced entity does not exist."""


class ProductNotFoundError(EntityNotFoundError):
    message = "Product not found"


class CartNotFoundError(EntityNotFoundError):
    message = "Cart not found"


class ItemNotFoundInCartError(EntityNotFoundError):
    message = "Item not found in cart"
