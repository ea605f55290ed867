"""
Pytest fixtures for PharmaPOS backend tests.

Provides test database setup, seed rows (cashier, products, batches) and test client.
"""

from datetime import date
from decimal import Decimal

import pytest

from pharmapos import create_app
from pharmapos.extensions import db
from pharmapos.models import Discount, Product, StockBatch, User


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'ALLOWED_ORIGINS': ['http://localhost:5173'],
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
def cashier(db_session):
    user = User(
        auth_user_id="auth-cashier-1",
        username="cashier1",
        first_name="Ana",
        last_name="Cruz",
        role="Cashier",
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def senior_discount(db_session):
    discount = Discount(name="Senior Citizen Discount", percent=Decimal("20"), is_vat_exempt=True)
    db_session.add(discount)
    db_session.commit()
    return discount


@pytest.fixture(scope='function')
def paracetamol(db_session):
    product = Product(
        name="Biogesic 500mg",
        generic_name="Paracetamol",
        category="Analgesic",
        brand="Unilab",
        selling_price=Decimal("50.00"),
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def amoxicillin(db_session):
    product = Product(
        name="Amoxil 250mg",
        generic_name="Amoxicillin",
        category="Antibiotic",
        brand="GSK",
        selling_price=Decimal("12.50"),
        prescription_required=True,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def make_batch(db_session, cashier):
    """Factory: make_batch(product, stock, expiry=None, **kw) -> StockBatch"""
    def _make(product, stock, expiry=None, **kw):
        batch = StockBatch(
            product_id=product.id,
            user_id=cashier.id,
            stock=stock,
            expiry_date=expiry,
            **kw,
        )
        db_session.add(batch)
        db_session.commit()
        return batch
    return _make


@pytest.fixture(scope='function')
def paracetamol_batches(paracetamol, make_batch):
    """Two dated batches: 5 units expiring first, 10 units expiring later."""
    first = make_batch(paracetamol, 5, date(2025, 1, 1), batch_number="LOT-A")
    second = make_batch(paracetamol, 10, date(2025, 2, 1), batch_number="LOT-B")
    return first, second
