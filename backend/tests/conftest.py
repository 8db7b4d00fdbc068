"""
Pytest fixtures for storefront backend tests.

Provides an in-memory database, a per-test table wipe, the test client and
small factories for catalog and promo rows.
"""

import uuid
from datetime import timedelta
from decimal import Decimal

import pytest

from storefront import create_app
from storefront.extensions import db
from storefront.services import catalog_service, promotions_service
from storefront.time_utils import utcnow


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    # Clear all data but keep schema
    meta = db.metadata
    for table in reversed(meta.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    yield db.session

    # Cleanup after test
    db.session.rollback()
    db.session.remove()


@pytest.fixture(scope='function')
def client(app, db_session):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def guest_token():
    return str(uuid.uuid4())


@pytest.fixture
def shipping_address():
    return {
        "first_name": "Ada",
        "last_name": "Lovelace",
        "email": "ada@example.com",
        "phone": "5551234567",
        "address": "12 Analytical Way",
        "city": "London",
        "state": "Greater London",
        "zip_code": "EC1A1BB",
        "country": "UK",
    }


@pytest.fixture
def make_product(db_session):
    """Factory: product with one or more variants, created through the service."""
    counter = {"n": 0}

    def _make(name="Test Tee", category="Clothing", price="10.00", inventory=10, variants=None, **extra):
        counter["n"] += 1
        n = counter["n"]
        if variants is None:
            variants = [{
                "variant_key": f"v{n}-default",
                "name": "Default",
                "price": Decimal(price),
                "sku": f"SKU-{n}-DEFAULT",
                "inventory": inventory,
                "attributes": {"size": "M"},
            }]
        patch = {
            "name": name,
            "description": f"{name} description",
            "category": category,
            "base_price": Decimal(price),
            "images": [],
            "variants": variants,
        }
        patch.update(extra)
        return catalog_service.create_product(patch=patch)

    return _make


@pytest.fixture
def make_promo(db_session):
    """Factory: promo valid from yesterday until next month unless told otherwise."""
    def _make(code="SAVE10", promo_type="percentage", value="10", **overrides):
        now = utcnow()
        data = {
            "code": code,
            "name": f"{code} promo",
            "type": promo_type,
            "value": Decimal(value),
            "valid_from": now - timedelta(days=1),
            "valid_until": now + timedelta(days=30),
            "minimum_order_amount": None,
            "max_discount_amount": None,
            "usage_limit": None,
            "is_active": True,
        }
        data.update(overrides)
        return promotions_service.create_promo(data)

    return _make
