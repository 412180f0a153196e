"""
Pytest fixtures for hortifruti backend tests.

Provides the app on an in-memory database, a per-test clean schema, an
authenticated admin/user pair and small record factories.
"""

from decimal import Decimal

import pytest

from hortifruti import create_app
from hortifruti.extensions import db
from hortifruti.models import Address, Customer
from hortifruti.services import auth_service, products_service, token_service


TEST_PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'JWT_SECRET': 'test-secret',
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
def admin_user(db_session):
    """Create an ADMIN user."""
    return auth_service.create_user(
        name="Admin", email="admin@hortiflow.com", password=TEST_PASSWORD, role="ADMIN"
    )


@pytest.fixture(scope='function')
def regular_user(db_session):
    """Create a plain USER."""
    return auth_service.create_user(
        name="Clerk", email="clerk@hortiflow.com", password=TEST_PASSWORD, role="USER"
    )


def access_token_for(user) -> str:
    """Helper to mint an access token without going through /login."""
    return token_service.generate_access_token(str(user.id), {"email": user.email, "role": user.role})


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    return auth_headers(access_token_for(admin_user))


@pytest.fixture(scope='function')
def user_headers(regular_user):
    return auth_headers(access_token_for(regular_user))


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: product with the given stock and price, created through the service."""
    def _make(name="Alface", unit_price="5.00", initial_stock="100", packaging="Band. 200m"):
        return products_service.create_product(patch={
            "name": name,
            "unit_price": Decimal(unit_price),
            "initial_stock": Decimal(initial_stock),
            "packaging": packaging,
        })
    return _make


@pytest.fixture(scope='function')
def customer(db_session):
    """Customer with one principal address."""
    c = Customer(name="Mercado Central", tax_id="12345678901", phone="11999990000")
    db_session.add(c)
    db_session.flush()
    db_session.add(Address(customer_id=c.id, street="Rua A", number="10", city="Sao Paulo", state="SP", principal=True))
    db_session.commit()
    return c


@pytest.fixture(scope='function')
def other_customer(db_session):
    """Customer without addresses."""
    c = Customer(name="Quitanda Bairro")
    db_session.add(c)
    db_session.commit()
    return c
