"""
Pytest fixtures for stock ledger tests.

Provides an in-memory database, a per-test table wipe and small factories
for suppliers and items.
"""

import pytest

from stockledger import create_app
from stockledger.extensions import db
from stockledger.services import item_service, supplier_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'WRITE_RETRY_BACKOFF': 0.0,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


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
def supplier(db_session):
    """Active supplier with a code."""
    return supplier_service.create_supplier(name="Acme Wholesale", code="ACME")


@pytest.fixture(scope='function')
def make_item(db_session):
    """Factory registering items through the item service."""
    def _make(name="Widget", price_cents=1000, quantity=0, threshold=5, supplier_id=None, code=None):
        return item_service.register_item(
            name=name,
            price_cents=price_cents,
            code=code,
            initial_quantity=quantity,
            reorder_threshold=threshold,
            supplier_id=supplier_id,
        )
    return _make


@pytest.fixture(scope='function')
def item(make_item):
    """Item X from the sale scenarios: 10 on hand at 10.00."""
    return make_item(name="Item X", price_cents=1000, quantity=10)
