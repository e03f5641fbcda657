"""Pytest configuration and fixtures"""
import os
from decimal import Decimal
from uuid import uuid4

import pytest

# Set test environment variables before settings are imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("TX_BACKOFF_BASE_SECONDS", "0")

from storefront.data.database import Database
from storefront.data.models import CartItemModel, CartModel, ProductImageModel, ProductVariationModel
from storefront.services.cart_engine import CartTransactionEngine
from storefront.utils.retry import RetryPolicy


@pytest.fixture
def database(tmp_path):
    """File-backed sqlite store, one per test"""
    db = Database(f"sqlite:///{tmp_path / 'storefront.db'}")
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def engine(database):
    """Cart engine without backoff delays"""
    return CartTransactionEngine(database, retry_policy=RetryPolicy(attempts=3, backoff_base=0))


@pytest.fixture
def make_variation(database):
    """Factory inserting a catalog variation, returns its id"""

    def _make(stock=10, price="29.99", sale_price="0", product_id=None, images=()):
        with database.session() as db:
            variation = ProductVariationModel(
                product_id=product_id or str(uuid4()),
                size="M",
                color="black",
                price=Decimal(price),
                sale_price=Decimal(sale_price),
                stock=stock,
            )
            variation.images = [ProductImageModel(url=url) for url in images]
            db.add(variation)
            db.commit()
            return variation.id

    return _make


@pytest.fixture
def stock_of(database):
    """Current stock of a variation"""

    def _stock(variation_id):
        with database.session() as db:
            return db.get(ProductVariationModel, variation_id).stock

    return _stock


@pytest.fixture
def load_cart(database):
    """Raw cart row (any status) plus its items"""

    def _load(cart_id):
        with database.session() as db:
            cart = db.get(CartModel, cart_id)
            items = db.query(CartItemModel).filter(CartItemModel.cart_id == cart_id).all()
            return cart, items

    return _load
