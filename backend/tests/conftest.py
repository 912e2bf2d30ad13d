"""
Pytest fixtures for Tillbook backend tests.

Provides test database setup, seed helpers, and test client.
"""

import pytest

from tillbook import create_app
from tillbook.extensions import db
from tillbook.services import catalog_service


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
def tracked_product(db_session):
    """Tracked product with 10 units in stock."""
    return catalog_service.create_product(
        name="Bottled Water",
        price_cents=250,
        category="Drinks",
        sku="DRK-001",
        track_stock=True,
        stock_quantity=10,
        low_stock_threshold=4,
        actor="tester",
    )


@pytest.fixture(scope='function')
def untracked_product(db_session):
    """Made-to-order item without stock tracking."""
    return catalog_service.create_product(
        name="Club Sandwich",
        price_cents=1250,
        category="Food",
        actor="tester",
    )


def actor_headers(actor: str = "front-desk") -> dict:
    """Helper to create the actor identity header."""
    return {'X-Actor': actor}


@pytest.fixture(scope='function')
def headers():
    return actor_headers()
