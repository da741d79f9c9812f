"""Shared fixtures: a throwaway SQLite database per test and seeded records."""
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from shopbill.db.init_db import init_db
from shopbill.db.session import build_engine, build_session_factory
from shopbill.schemas.business import BusinessCreate
from shopbill.schemas.customer import CustomerCreate
from shopbill.schemas.invoice import InvoiceCreate, InvoiceItemIn
from shopbill.schemas.product import ProductCreate
from shopbill.schemas.shop import ShopCreate
from shopbill.services import records


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'shopbill_test.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def business(db):
    return records.create_business(
        db,
        BusinessCreate(name="Sharma Traders", invoice_prefix="INV-", invoice_number_padding=4),
    )


@pytest.fixture
def shop(db, business):
    return records.create_shop(db, ShopCreate(business_id=business.id, name="Main Road Branch"))


@pytest.fixture
def customer(db, business):
    return records.create_customer(
        db, CustomerCreate(business_id=business.id, name="Rajesh Kumar", phone="+91-9876543210"),
    )


@pytest.fixture
def product(db, business):
    return records.create_product(
        db,
        ProductCreate(
            business_id=business.id, name="Paracetamol 500mg", sku="PCM-500",
            unit_price=Decimal("50.00"), tax_rate=Decimal("12"), tax_type="GST",
        ),
    )


def make_invoice_data(business_id, shop_id, items=None, **overrides) -> InvoiceCreate:
    """InvoiceCreate with one 2 x 100 line, 10 discount, 18% GST unless items are given."""
    if items is None:
        items = [
            InvoiceItemIn(
                description="Widget", quantity=Decimal("2"), unit_price=Decimal("100"),
                discount=Decimal("10"), tax_rate=Decimal("18"), tax_type="GST",
            )
        ]
    return InvoiceCreate(business_id=business_id, shop_id=shop_id, items=items, **overrides)


@pytest.fixture
def invoice_data(business, shop):
    def _make(items=None, **overrides):
        return make_invoice_data(business.id, shop.id, items=items, **overrides)
    return _make


@pytest.fixture
def client(session_factory):
    """TestClient bound to the test database. Lifespan is not run."""
    from shopbill.api.deps import get_db
    from shopbill.main import app

    def _get_test_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_test_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
