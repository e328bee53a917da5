"""
Pytest configuration for the sales API tests.

Settings are read from the environment at import time, so the test
values are set before any ``app`` module is imported.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from collections import defaultdict
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.config.database import Base, get_db
from app.core.auth.security import create_access_token
from app.core.exceptions import NotFoundError, StockError
from app.shared.database.models import User
from app.shared.services.inventory_client import ProductInfo, get_inventory_client


class FakeInventoryClient:
    """
    In-memory stand-in for the inventory service.

    Every attempted call is recorded in ``calls`` as ``(operation, product_id, quantity)``;
    ``net`` tracks the stock change per product of the calls that succeeded.
    """

    def __init__(self, prices=None):
        self.prices = {pid: Decimal(str(price)) for pid, price in (prices or {}).items()}
        self.names = {pid: f"Producto {pid}" for pid in self.prices}
        self.calls = []
        self.lookups = []
        self.net = defaultdict(int)
        self._failures = {}

    def fail(self, operation, product_id, error=None):
        self._failures[(operation, product_id)] = error or StockError(
            f"Stock insuficiente para {product_id}",
            status_code=400,
            upstream_status=400,
            product_id=product_id,
        )

    def clear_failures(self):
        self._failures.clear()

    def _call(self, operation, product_id, quantity, sign):
        self.calls.append((operation, product_id, quantity))
        error = self._failures.get((operation, product_id))
        if error is not None:
            raise error
        self.net[product_id] += sign * quantity
        return {"product_id": product_id, "stock_change": sign * quantity}

    def decrement(self, product_id, quantity):
        return self._call("decrement", product_id, quantity, -1)

    def adjust(self, product_id, delta):
        return self._call("adjust", product_id, delta, 1)

    def get_product(self, product_id):
        self.lookups.append(product_id)
        if product_id not in self.prices:
            raise NotFoundError(f"Producto {product_id} no encontrado")
        return ProductInfo(product_id=product_id, price=self.prices[product_id], name=self.names[product_id])

    def stock_calls(self):
        return [call for call in self.calls if call[0] in ("decrement", "adjust")]

    def balanced(self):
        return all(value == 0 for value in self.net.values())


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


def _make_user(db, email, first_name, role):
    user = User(
        email=email,
        first_name=first_name,
        last_name="Test",
        role=role,
        password_hash="not-a-real-hash",
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def admin(db_session):
    return _make_user(db_session, "admin@empresa.com", "Admin", "administrador")


@pytest.fixture
def seller(db_session):
    return _make_user(db_session, "vendedor@empresa.com", "Vendedor", "vendedor")


@pytest.fixture
def other_seller(db_session):
    return _make_user(db_session, "otro@empresa.com", "Otro", "vendedor")


@pytest.fixture
def consultant(db_session):
    return _make_user(db_session, "consultor@empresa.com", "Consultor", "consultor")


@pytest.fixture
def inventory():
    return FakeInventoryClient(prices={"P1": "10", "P2": "5", "P3": "2.50"})


@pytest.fixture
def client(db_session, inventory):
    from app.main import app

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_inventory_client] = lambda: inventory
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(user):
        token = create_access_token(user.id, user.role, user.full_name)
        return {"Authorization": f"Bearer {token}"}

    return _headers
