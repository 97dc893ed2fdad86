"""
Pytest fixtures for Paint ERP backend tests.

Provides test database setup, users with session tokens, a brand with a
sized product, and the test client.
"""

from decimal import Decimal

import pytest

from paint_erp import create_app
from paint_erp.extensions import db
from paint_erp.services import catalog_service, session_service
from paint_erp.services.auth_service import create_user


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'ENV': 'testing',
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
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
def user(db_session):
    """Staff user who bills invoices."""
    return create_user(name="Counter Staff", email="staff@paintshop.test", password="Password123")


@pytest.fixture(scope='function')
def other_user(db_session):
    """Second staff user, used for ownership checks."""
    return create_user(name="Other Staff", email="other@paintshop.test", password="Password123")


@pytest.fixture(scope='function')
def admin_user(db_session):
    """Shop owner with the super_admin role."""
    return create_user(
        name="Shop Owner",
        email="owner@paintshop.test",
        password="Password123",
        role="super_admin",
    )


def token_for(user) -> str:
    """Helper to open a session for a user and return the bearer token."""
    _, token = session_service.create_session(user_id=user.id)
    return token


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def headers(user):
    return auth_headers(token_for(user))


@pytest.fixture(scope='function')
def other_headers(other_user):
    return auth_headers(token_for(other_user))


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    return auth_headers(token_for(admin_user))


@pytest.fixture(scope='function')
def brand(db_session):
    return catalog_service.create_brand(name="Asian Paints", image="asian.png")


@pytest.fixture(scope='function')
def other_brand(db_session):
    return catalog_service.create_brand(name="Berger")


@pytest.fixture(scope='function')
def product(db_session, brand):
    """Sized emulsion: 10 x 1L, 5 x 4L, priced per size."""
    return catalog_service.create_product(patch={
        "name": "Royale Luxury Emulsion",
        "brand_id": brand.id,
        "type": "Emulsion",
        "product_code": "AP100",
        "price": Decimal("450"),
        "stock_by_size": {"1L": 10, "4L": 5},
        "price_by_size": {"1L": Decimal("500"), "4L": Decimal("1800")},
    })


@pytest.fixture(scope='function')
def legacy_product(db_session, brand):
    """Product managed by bare total stock only."""
    return catalog_service.create_product(patch={
        "name": "Tractor Distemper",
        "brand_id": brand.id,
        "type": "Distemper",
        "price": Decimal("250"),
        "stock": 20,
    })


@pytest.fixture(scope='function')
def headers_for(db_session):
    """Factory fixture: headers_for(user) opens a new session for user."""
    return lambda user: auth_headers(token_for(user))
