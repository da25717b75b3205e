"""
Pytest fixtures for CounterPOS backend tests.

Provides the test app (in-memory SQLite), a fresh database per test,
admin/cashier accounts with auth headers, and a small seeded catalog.
"""

import pytest
from counterpos import create_app
from counterpos.config import TestConfig
from counterpos.extensions import db, carts
from counterpos.services import auth_service
from counterpos.services.catalog_service import get_catalog

PASSWORD = "secret1"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

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

        # Process-local state lives as long as the app, not the test
        get_catalog().invalidate()
        carts.clear()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def admin(db_session):
    """Admin account (provisioned the way the CLI does it)."""
    return auth_service.provision_account(
        email="admin@counterpos.test",
        password=PASSWORD,
        username="admin",
        role="admin",
    )


@pytest.fixture(scope='function')
def cashier(db_session):
    return auth_service.provision_account(
        email="cashier@counterpos.test",
        password=PASSWORD,
        username="cashier",
        role="cashier",
    )


@pytest.fixture(scope='function')
def second_cashier(db_session):
    return auth_service.provision_account(
        email="cashier2@counterpos.test",
        password=PASSWORD,
        username="cashier2",
        role="cashier",
    )


@pytest.fixture(scope='function')
def admin_headers(client, admin):
    return auth_headers(get_auth_token(client, "admin", PASSWORD))


@pytest.fixture(scope='function')
def cashier_headers(client, cashier):
    return auth_headers(get_auth_token(client, "cashier", PASSWORD))


@pytest.fixture(scope='function')
def second_cashier_headers(client, second_cashier):
    return auth_headers(get_auth_token(client, "cashier2", PASSWORD))


@pytest.fixture(scope='function')
def items(db_session):
    """
    Seed catalog, keyed by name.

    Water: plenty of stock; Bread: low stock; Candy: a single unit; Gum: none.
    """
    catalog = get_catalog()
    seeded = {}
    for name, category, price_cents, stock in [
        ("Water", "Beverages", 2000, 50),
        ("Bread", "Bakery", 2550, 3),
        ("Candy", "Snacks", 500, 1),
        ("Gum", "Snacks", 1000, 0),
    ]:
        record = catalog.create({
            "name": name,
            "category": category,
            "price_cents": price_cents,
            "stock": stock,
        })
        seeded[name] = record
    return seeded


def get_auth_token(client, identifier: str, password: str) -> str:
    """Helper to get auth token for an account."""
    response = client.post('/api/auth/login', json={
        'identifier': identifier,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
