"""
Pytest fixtures for the tindahan backend tests.

Provides the in-memory test database, principals with roles and bearer
tokens, owned products, a test client, and a file-backed app for tests that
need real concurrent connections.
"""

from decimal import Decimal

import pytest
from tindahan import create_app
from tindahan.extensions import db
from tindahan.models import Product
from tindahan.services import principal_service, role_service, session_service


TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'PIN_HASH_ROUNDS': 4,
    'CONFLICT_RETRY_BACKOFF': 0.01,
    'LOG_LEVEL': 'WARNING',
}


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TEST_CONFIG)

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
def file_app(tmp_path):
    """
    Application on a SQLite file so worker threads get their own
    connections and really contend for the write lock.
    """
    app = create_app({
        **TEST_CONFIG,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'concurrency.sqlite3'}",
        'SQLALCHEMY_ENGINE_OPTIONS': {'connect_args': {'timeout': 30}},
        'CONFLICT_RETRY_ATTEMPTS': 10,
    })

    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture(scope='function')
def alice(db_session):
    """First principal: bootstraps as admin, has PIN 1234."""
    principal = principal_service.register_principal("auth0|alice", "Alice Reyes", pin="1234")
    role_service.ensure_role(principal.id)
    return principal


@pytest.fixture(scope='function')
def bob(db_session, alice):
    """Second principal: bootstraps as cashier, no PIN."""
    principal = principal_service.register_principal("auth0|bob", "Bob Cruz")
    role_service.ensure_role(principal.id)
    return principal


@pytest.fixture(scope='function')
def alice_token(alice):
    _, token = session_service.create_session(alice.id)
    return token


@pytest.fixture(scope='function')
def bob_token(bob):
    _, token = session_service.create_session(bob.id)
    return token


def make_product(owner_id: int, name: str, selling_price: str, cost_price: str = "0.00", stock_qty: int = 10, **kwargs) -> Product:
    """Insert a product directly, bypassing the service layer."""
    product = Product(
        owner_id=owner_id,
        name=name,
        selling_price=Decimal(selling_price),
        cost_price=Decimal(cost_price),
        stock_qty=stock_qty,
        **kwargs,
    )
    db.session.add(product)
    db.session.commit()
    return product


@pytest.fixture(scope='function')
def product_a(alice):
    """Alice's product A: 14.00 each, 50 on hand."""
    return make_product(alice.id, "Lucky Me Pancit Canton", "14.00", cost_price="10.50", stock_qty=50)


@pytest.fixture(scope='function')
def product_b(alice):
    """Alice's product B: 62.00 each, 20 on hand."""
    return make_product(alice.id, "Coke 1.5L", "62.00", cost_price="55.00", stock_qty=20)


@pytest.fixture(scope='function')
def bob_product(bob):
    return make_product(bob.id, "Skyflakes", "8.00", cost_price="6.00", stock_qty=30)


def stock_of(product_id: int) -> int:
    """Current committed stock, read with a column query (never the identity map)."""
    return db.session.query(Product.stock_qty).filter(Product.id == product_id).scalar()


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def alice_headers(alice_token):
    return auth_headers(alice_token)


@pytest.fixture(scope='function')
def bob_headers(bob_token):
    return auth_headers(bob_token)
