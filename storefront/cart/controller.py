"""
Cart HTTP endpoints.

Thin translation layer: resolve the caller's identity, hand the request to
CartService, and map cart errors to HTTP statuses. The service is a FastAPI
dependency (``service_provider``) so it can be swapped per app or per test.
"""

from typing import Callable, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from storefront.api.auth import get_current_user_id
from storefront.cart.cart_repository import CartRepository
from storefront.cart.errors import (
    CartError,
    CartValidationError,
    EntityNotFoundError,
    InsufficientStockError,
    InvalidUserError,
)
from storefront.cart.product_repository import ProductRepository
from storefront.cart.service import CartService, is_valid_user_id
from storefront.database import get_db
from storefront.schemas import (
    AddToCartRequest,
    CartItemResponse,
    CartResponse,
    ErrorResponse,
    RemoveFromCartRequest,
    UpdateCartItemRequest,
)
from storefront.utils.logger import get_logger

logger = get_logger("cart.controller")

# First match wins; order subclasses before their bases
_STATUS_BY_ERROR = (
    (InvalidUserError, 401),
    (CartValidationError, 400),
    (InsufficientStockError, 400),
    (EntityNotFoundError, 404),
)

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


def status_for_error(exc: CartError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


def _error_response(exc: CartError) -> JSONResponse:
    status_code = status_for_error(exc)
    if status_code == 401:
        # Identity problems are reported generically
        return _unauthorized()
    return JSONResponse(status_code=status_code, content={"message": exc.message})


def _unauthorized() -> JSONResponse:
    return JSONResponse(status_code=401, content={"message": "Unauthorized"})


def _validation_message(exc: RequestValidationError) -> str:
    for error in exc.errors():
        if error.get("type") == "json_invalid":
            return "Malformed JSON body"
        field = ".".join(str(part) for part in error.get("loc", ()) if part != "body") or "body"
        if error.get("type") == "extra_forbidden":
            return f"Unknown field: {field}"
        return f"Invalid value for {field}"
    return "Invalid request"


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Malformed request bodies. Identity is checked first so anonymous callers
    get 401 whatever they sent; everyone else gets 400 ``{"message": ...}``.
    """
    if not is_valid_user_id(get_current_user_id(request)):
        logger.info("cart_controller: path=%s result=unauthorized", request.url.path)
        return _unauthorized()
    message = _validation_message(exc)
    logger.info("cart_controller: path=%s result=invalid_request error=%s", request.url.path, message)
    return JSONResponse(status_code=400, content={"message": message})


def get_cart_service(request: Request, db: Session = Depends(get_db)) -> CartService:
    """Default provider: a CartService over SQLAlchemy repositories for this request."""
    config = getattr(request.app.state, "config", None)
    return CartService(CartRepository(db), ProductRepository(db), config=config)


def build_cart_router(service_provider: Callable[..., CartService] = get_cart_service) -> APIRouter:
    """Create the ``/api/cart`` router bound to ``service_provider``."""
    router = APIRouter(prefix="/api/cart", tags=["cart"], responses=_ERROR_RESPONSES)

    def _run(user_id: Optional[str], operation: str, call):
        if not is_valid_user_id(user_id):
            logger.info("cart_controller: operation=%s result=unauthorized", operation)
            return _unauthorized()
        try:
            return call(user_id)
        except CartError as exc:
            logger.info(
                "cart_controller: operation=%s user_id=%s result=error status=%s error=%s",
                operation, user_id, status_for_error(exc), exc.message,
            )
            return _error_response(exc)

    @router.get("", response_model=CartResponse)
    def get_cart(
        user_id: Optional[str] = Depends(get_current_user_id),
        service: CartService = Depends(service_provider),
    ):
        """Current cart with recomputed totals. Never creates a cart."""
        return _run(user_id, "get_cart", service.get_cart)

    @router.post("", response_model=None)
    def post_cart(
        payload: Optional[AddToCartRequest] = None,
        user_id: Optional[str] = Depends(get_current_user_id),
        service: CartService = Depends(service_provider),
    ):
        """Add when the body names a product, otherwise behave like GET."""
        if payload is not None and payload.product_id:
            return _run(user_id, "add_to_cart", lambda uid: service.add_to_cart(uid, payload))
        return _run(user_id, "get_cart", service.get_cart)

    @router.post("/add", response_model=CartItemResponse)
    def add_to_cart(
        payload: Optional[AddToCartRequest] = None,
        user_id: Optional[str] = Depends(get_current_user_id),
        service: CartService = Depends(service_provider),
    ):
        """
        Add a product to the cart.

        - Increments the existing line instead of duplicating it
        - Creates the cart on first add
        - 400 for missing productId / non-positive quantity / insufficient stock
        - 404 when the product does not exist
        """
        body = payload or AddToCartRequest()
        return _run(user_id, "add_to_cart", lambda uid: service.add_to_cart(uid, body))

    @router.put("", response_model=CartItemResponse)
    @router.put("/update", response_model=CartItemResponse)
    def update_cart_item(
        payload: Optional[UpdateCartItemRequest] = None,
        user_id: Optional[str] = Depends(get_current_user_id),
        service: CartService = Depends(service_provider),
    ):
        """Set a line's quantity (0 removes it)."""
        body = payload or UpdateCartItemRequest()
        return _run(user_id, "update_cart_item", lambda uid: service.update_cart_item(uid, body))

    # /clear and /remove must be registered before /{product_id}
    @router.delete("/clear", response_model=CartItemResponse)
    def clear_cart(
        user_id: Optional[str] = Depends(get_current_user_id),
        service: CartService = Depends(service_provider),
    ):
        return _run(user_id, "clear_cart", service.clear_cart)

    @router.delete("/remove", response_model=CartItemResponse)
    def remove_from_cart_body(
        payload: Optional[RemoveFromCartRequest] = None,
        user_id: Optional[str] = Depends(get_current_user_id),
        service: CartService = Depends(service_provider),
    ):
        body = payload or RemoveFromCartRequest()
        return _run(user_id, "remove_from_cart", lambda uid: service.remove_from_cart(uid, body))

    @router.delete("/{product_id}", response_model=CartItemResponse)
    def remove_from_cart(
        product_id: str,
        user_id: Optional[str] = Depends(get_current_user_id),
        service: CartService = Depends(service_provider),
    ):
        body = RemoveFromCartRequest(productId=product_id)
        return _run(user_id, "remove_from_cart", lambda uid: service.remove_from_cart(uid, body))

    return router
