"""Pytest fixtures for the COD order service tests."""

import os

# settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENV"] = "test"
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

from app.database import engine, get_session
from app.dependencies.services import get_clock, get_estimator
from app.models.kv_record import KVRecord  # noqa: F401
from app.models.product import Product
from app.models.user import User, UserLocation, UserRole
from app.services.delivery_estimate import FixedDeliveryEstimator
from app.services.directory import save_product, save_user
from app.services.order_lifecycle import OrderLifecycle
from app.services.record_store import RecordStore
from app.utils.token import create_access_token


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def db_engine():
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(db_engine):
    with Session(db_engine) as session:
        yield session


@pytest.fixture
def store(session):
    return RecordStore(session)


@pytest.fixture
def clock():
    return FrozenClock(datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def lifecycle(store, clock):
    return OrderLifecycle(store, estimator=FixedDeliveryEstimator(45), clock=clock)


@pytest.fixture
def users(store):
    """Admin, seller and two buyers saved to the store."""
    people = {
        "admin": User(id="admin-1", name="Ops Admin", email="ops@example.com", role=UserRole.admin),
        "seller": User(
            id="seller-1",
            name="Rose Garden",
            email="rose@flowers.com",
            phone="+1 555 0101",
            role=UserRole.seller,
            location=UserLocation(city="New York", lat=40.71, lng=-74.0),
        ),
        "buyer": User(id="buyer-1", name="Ada Buyer", email="ada@example.com", phone="+1 555 0199"),
        "other_buyer": User(id="buyer-2", name="Bo Buyer", email="bo@example.com"),
    }
    for user in people.values():
        save_user(store, user)
    store.commit()
    return people


@pytest.fixture
def product(store, users):
    item = Product(id="prod-1", seller_id="seller-1", title="Spring bouquet", price=Decimal("15.00"))
    save_product(store, item)
    store.commit()
    return item


@pytest.fixture
def place_order(lifecycle, product):
    """Factory placing an order for ``product`` as buyer-1."""

    def _place(quantity=2, **overrides):
        params = dict(
            product_id=product.id,
            seller_id=product.seller_id,
            buyer_id="buyer-1",
            quantity=quantity,
            delivery_address="12 Market Street",
            delivery_phone="+1 555 0199",
            unit_price=product.price,
        )
        params.update(overrides)
        return lifecycle.create_order(**params)

    return _place


@pytest.fixture
def deliver(lifecycle, users):
    """Walk an order through every forward status up to delivered."""

    def _deliver(order_id):
        order = None
        for status in ("confirmed", "preparing", "out_for_delivery", "delivered"):
            order = lifecycle.transition(order_id, status, users["admin"])
        return order

    return _deliver


@pytest.fixture
def api_client(db_engine, clock):
    from app.main import app

    def override_session():
        with Session(db_engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_estimator] = lambda: FixedDeliveryEstimator(45)
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(user_id: str) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'sub': user_id})}"}
