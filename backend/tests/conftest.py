"""
Pytest fixtures for the convenience store backend tests.

Provides an in-memory database, a test client and small factories for
products, customers and promotional sales.
"""

from datetime import datetime, timedelta

import pytest

from cstore import create_app
from cstore.extensions import db
from cstore.services import customers_service, products_service, promotions_service

STAFF_CODE = "staff-test-code"

# A fixed clock for anything date sensitive
NOW = datetime(2025, 3, 14, 10, 30)
TODAY = NOW.date()


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'STAFF_ACCESS_CODE': STAFF_CODE,
        'PROMO_PRICING': 'PER_LINE',
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
def staff_headers():
    return {"X-Staff-Code": STAFF_CODE}


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
def make_product(db_session):
    """Factory: make_product("F-001", price_cents=10000, quantity=10)."""
    def _make(code, price_cents=10000, quantity=10, name=None, expiration_date=None, **kwargs):
        return products_service.create_product(
            name=name or f"Item {code}",
            price_cents=price_cents,
            product_code=code,
            quantity=quantity,
            expiration_date=expiration_date,
            **kwargs,
        )
    return _make


@pytest.fixture(scope='function')
def product(make_product):
    """F-001 priced ₱100.00 with 10 on hand."""
    return make_product("F-001", price_cents=10000, quantity=10, name="Chicken Sandwich")


@pytest.fixture(scope='function')
def customer(db_session):
    return customers_service.register_customer("Juan", "Dela Cruz", "Santos")


@pytest.fixture(scope='function')
def member(db_session):
    """A customer holding a card with 30 points that expires next year."""
    customer = customers_service.register_customer("Maria", "Clara")
    card = customers_service.issue_membership_card(customer.id, as_of=TODAY)
    card.points_balance = 30
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def make_sale(db_session):
    """Factory for a sale active around NOW."""
    def _make(target, discount_kind, discount_value, start_at=None, end_at=None, **kwargs):
        return promotions_service.add_sale(
            target,
            discount_kind,
            discount_value,
            start_at or NOW - timedelta(days=1),
            end_at or NOW + timedelta(days=1),
            **kwargs,
        )
    return _make
