"""Pytest configuration for the cart service tests."""

import pytest
from fastapi.testclient import TestClient

from storefront.api.server import create_app
from storefront.cart.cart_repository import CartRepository
from storefront.cart.product_repository import ProductRepository
from storefront.cart.service import CartService
from storefront.core.config import StorefrontConfig, get_config, set_config
from storefront.database import create_tables, make_engine, make_session_factory
from storefront.models import Product

PLACEHOLDER_URL = "https://res.cloudinary.com/demo/image/upload/sample.jpg"


@pytest.fixture(scope="function", autouse=True)
def test_config():
    """Deterministic settings for every test, restored afterwards."""
    previous = get_config()
    config = StorefrontConfig(
        database_url="sqlite://",
        cloudinary_cloud_name="demo",
        placeholder_url=PLACEHOLDER_URL,
        placeholder_width=800,
        placeholder_height=600,
        user_id_header="X-User-Id",
        env="development",
    )
    set_config(config)
    yield config
    set_config(previous)


# ---------------------------------------------------------------------------
# Database: fresh in-memory SQLite per test
# ---------------------------------------------------------------------------

@pytest.fixture
def engine():
    eng = make_engine("sqlite://")
    create_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def add_product(session_factory):
    """Insert a catalog product and return its id."""

    def _add(product_id, name="Kaju Katli", price=10.0, stock=5, images=None):
        session = session_factory()
        try:
            session.add(Product(id=product_id, name=name, price=price, stock=stock, images=images))
            session.commit()
        finally:
            session.close()
        return product_id

    return _add


@pytest.fixture
def set_stock(session_factory):
    def _set(product_id, stock):
        session = session_factory()
        try:
            session.get(Product, product_id).stock = stock
            session.commit()
        finally:
            session.close()

    return _set


@pytest.fixture
def delete_product(session_factory):
    def _delete(product_id):
        session = session_factory()
        try:
            session.delete(session.get(Product, product_id))
            session.commit()
        finally:
            session.close()

    return _delete


@pytest.fixture
def cart_service(db, test_config):
    return CartService(CartRepository(db), ProductRepository(db), config=test_config)


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

@pytest.fixture
def client(test_config, session_factory):
    app = create_app(config=test_config, session_factory=session_factory)
    return TestClient(app)


@pytest.fixture
def auth_headers():
    return {"X-User-Id": "user-1"}
