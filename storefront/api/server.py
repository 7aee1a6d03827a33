"""
FastAPI application for the storefront cart service.

Usage:
    uvicorn storefront.api.server:create_app --factory --reload --port 8000
    # or
    python -m storefront.api.server
"""
import os
import time as _time
import traceback
from typing import Callable, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import sessionmaker
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request as StarletteRequest
from starlette.responses import Response as StarletteResponse

from storefront import __version__
from storefront.cart.controller import (
    build_cart_router,
    get_cart_service,
    request_validation_exception_handler,
)
from storefront.cart.service import CartService
from storefront.core.config import StorefrontConfig, get_config
from storefront.database import create_tables, make_engine, make_session_factory
from storefront.utils.logger import get_logger

logger = get_logger("api.server")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs every non-OPTIONS request with method, path, status, and duration_ms."""

    async def dispatch(self, request: StarletteRequest, call_next) -> StarletteResponse:
        if request.method == "OPTIONS":
            return await call_next(request)
        t0 = _time.perf_counter()
        response = await call_next(request)
        duration_ms = round((_time.perf_counter() - t0) * 1000, 1)
        logger.info(
            "[REQUEST] %s %s -> %d  %.1fms",
            request.method, request.url.path, response.status_code, duration_ms,
        )
        return response


def create_app(
    config: Optional[StorefrontConfig] = None,
    session_factory: Optional[sessionmaker] = None,
    service_provider: Callable[..., CartService] = get_cart_service,
) -> FastAPI:
    """
    Build the API.

    Args:
        config: Settings; defaults to the process-wide config.
        session_factory: SQLAlchemy session factory; built from
            ``config.database_url`` when omitted.
        service_provider: FastAPI dependency returning the CartService used by
            the cart routes.
    """
    config = config or get_config()

    if session_factory is None:
        engine = make_engine(config.database_url, echo=config.database_echo)
        session_factory = make_session_factory(engine)
    else:
        engine = session_factory.kw.get("bind")

    if engine is not None:
        try:
            create_tables(engine)
        except Exception as _e:
            logger.warning(
                "Could not run create_tables: %s. Tables should already exist (remote DB).",
                _e,
            )

    app = FastAPI(
        title="Storefront Cart API",
        description="Cart and product-image normalization service for the storefront SPA",
        version=__version__,
    )
    app.state.config = config
    app.state.session_factory = session_factory

    # Enable CORS for development
    # In production, configure this more strictly
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(build_cart_router(service_provider))
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Log unhandled exceptions and return 500 so 'Internal server error' is debuggable."""
        err_msg = str(exc)
        tb = traceback.format_exc()
        logger.error("Unhandled exception: %s\n%s", err_msg, tb)
        detail = err_msg if config.is_development else "Internal server error"
        return JSONResponse(
            status_code=500,
            content={"message": detail, "type": type(exc).__name__},
        )

    @app.get("/")
    def root():
        return {
            "service": "Storefront Cart API",
            "version": __version__,
            "status": "operational",
        }

    @app.get("/health")
    def health_check():
        """Health check including database connectivity."""
        health_status = {"service": "healthy", "database": "unknown"}
        try:
            db = app.state.session_factory()
            try:
                db.execute(text("SELECT 1"))
            finally:
                db.close()
            health_status["database"] = "healthy"
        except Exception as e:
            health_status["database"] = f"unhealthy: {str(e)}"
            health_status["service"] = "degraded"
        return health_status

    return app


if __name__ == "__main__":
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(create_app(), host="0.0.0.0", port=port)
