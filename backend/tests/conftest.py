"""
Pytest fixtures for Tillpoint backend tests.

Provides test database setup, catalog/stock factories, and test client.
"""

import pytest
from tillpoint import create_app
from tillpoint.extensions import db
from tillpoint.services import catalog_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'STORE_TIMEZONE': 'UTC',
        'STOCK_CONDITIONAL_WRITES': True,
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
def make_product(db_session):
    """Factory: sellable product with an optional opening stock row."""
    def _make(product_id, price="10.00", stock=None, purchase_price=None, sellable=True, barcode=None):
        product = catalog_service.create_product({
            "product_id": product_id,
            "product_name": f"Product {product_id}",
            "list_price": price,
            "is_sellable": sellable,
            "barcode": barcode,
        })
        if stock is not None:
            catalog_service.set_stock(product_id, {
                "stock_level": stock,
                "purchase_price": purchase_price,
            })
        return product
    return _make
