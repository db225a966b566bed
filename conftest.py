# Point the app at an in-memory database before any storefront import.
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("USE_HTTP_ADAPTERS", "false")
os.environ.setdefault("SEND_ORDER_CONFIRMATION", "false")

from decimal import Decimal
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from storefront import db
from storefront.main import app
from storefront.models import Cart, CartEntry, Product, User
from storefront.providers import build_order_service


@pytest.fixture
def engine():
    eng = db.build_engine("sqlite://")
    db.init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    with Session(engine, expire_on_commit=False) as s:
        yield s


@pytest.fixture
def seed(session):
    """One user with default addresses, two products and a two-line cart."""
    user = User(email="ana@example.com", default_delivery_address=11, default_billing_address=12)
    keyboard = Product(name="Keyboard", price=Decimal("45.00"), available_quantity=10)
    mouse = Product(name="Mouse", price=Decimal("20.00"), available_quantity=5)
    session.add_all([user, keyboard, mouse])
    session.flush()

    cart = Cart(user_id=user.id, total_price=Decimal("110.00"))
    cart.entries = [
        CartEntry(product_id=keyboard.id, quantity=2, price_per_piece=Decimal("45.00"),
                  total_price_per_entry=Decimal("90.00")),
        CartEntry(product_id=mouse.id, quantity=1, price_per_piece=Decimal("20.00"),
                  total_price_per_entry=Decimal("20.00")),
    ]
    session.add(cart)
    session.commit()
    return SimpleNamespace(user=user, keyboard=keyboard, mouse=mouse, cart=cart)


@pytest.fixture
def order_service(session):
    return build_order_service(session)


@pytest.fixture
def client(engine):
    factory = sessionmaker(bind=engine, expire_on_commit=False)

    def _get_db():
        with factory() as s:
            yield s

    app.dependency_overrides[db.get_db] = _get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
