"""
Pytest fixtures for Bazar backend tests.

Provides an in-memory database, a test client, staff users with bearer
tokens, and a small catalog (products, a motorcycle, customers).
"""

from datetime import datetime
from decimal import Decimal

import pytest
from bazar import create_app
from bazar.extensions import db
from bazar.models import User, Product, Motorcycle, Customer
from bazar.services import draft_service
from bazar.services.session_service import create_session
from bazar.time_utils import set_clock

FIXED_NOW = datetime(2026, 3, 15, 10, 30, 0)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'DB_RETRY_BACKOFF': 0,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def frozen_clock():
    """Pin utcnow() to FIXED_NOW for the duration of a test."""
    set_clock(lambda: FIXED_NOW)
    yield FIXED_NOW
    set_clock(None)


@pytest.fixture(scope='function')
def user(db_session):
    user = User(name="Cashier One", email="cashier1@bazar.local")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def other_user(db_session):
    user = User(name="Cashier Two", email="cashier2@bazar.local")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def token(user):
    _, plaintext = create_session(user.id)
    return plaintext


@pytest.fixture(scope='function')
def other_token(other_user):
    _, plaintext = create_session(other_user.id)
    return plaintext


@pytest.fixture(scope='function')
def product(db_session):
    """P1: stock 10."""
    product = Product(
        sku="P1",
        name="Engine Oil",
        retail_price=Decimal("100.00"),
        wholesale_price=Decimal("90.00"),
        stock_quantity=10,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def scarce_product(db_session):
    """P2: stock 2."""
    product = Product(
        sku="P2",
        name="Brake Pads",
        retail_price=Decimal("50.00"),
        wholesale_price=Decimal("45.00"),
        stock_quantity=2,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def motorcycle(db_session):
    motorcycle = Motorcycle(
        sku="M1",
        brand="Honda",
        model="CG125",
        usd_retail_price=Decimal("1450.00"),
        usd_wholesale_price=Decimal("1300.00"),
        stock_quantity=3,
    )
    db_session.add(motorcycle)
    db_session.commit()
    return motorcycle


@pytest.fixture(scope='function')
def customer(db_session):
    """Customer owing 500 IQD."""
    customer = Customer(
        sku="100001",
        name="Ahmed Garage",
        debt_iqd=Decimal("500.00"),
        debt_usd=Decimal("0"),
        current_balance=Decimal("500.00"),
    )
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def make_draft(user):
    """Factory: make_draft(items, type="RETAIL", **fields) -> Draft owned by user."""
    def _make(items, sale_type="RETAIL", owner=None, **fields):
        payload = {"type": sale_type, "items": items}
        payload.update(fields)
        return draft_service.create_draft(payload, user_id=(owner or user).id)
    return _make


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def headers(token):
    return auth_headers(token)


@pytest.fixture(scope='function')
def other_headers(other_token):
    return auth_headers(other_token)
