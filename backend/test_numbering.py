"""Tests for invoice number formatting and allocation."""
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy.exc import DataError

from conftest import make_invoice_data
from shopbill.core.exceptions import NotFoundError, ValidationError
from shopbill.db.session import unit_of_work
from shopbill.models.business import Business
from shopbill.models.invoice import Invoice
from shopbill.schemas.business import BusinessCreate
from shopbill.schemas.shop import ShopCreate
from shopbill.services import records
from shopbill.services.invoice_service import create_invoice
from shopbill.services.numbering import allocate_invoice_number, format_invoice_number


class TestFormatInvoiceNumber:

    def test_zero_pads_to_width(self):
        assert format_invoice_number("INV-", 42, 5) == "INV-00042"

    def test_wider_numbers_are_not_truncated(self):
        assert format_invoice_number("INV-", 123456, 4) == "INV-123456"

    def test_no_padding_and_no_prefix(self):
        assert format_invoice_number("", 7, 0) == "7"
        assert format_invoice_number(None, 7, None) == "7"


class TestAllocateInvoiceNumber:

    def test_allocates_and_advances_counter(self, db, business):
        with unit_of_work(db):
            first = allocate_invoice_number(db, business.id)
            second = allocate_invoice_number(db, business.id)

        assert (first, second) == ("INV-0001", "INV-0002")
        assert db.query(Business).filter(Business.id == business.id).one().invoice_next_number == 3

    def test_rollback_restores_counter(self, db, business):
        with pytest.raises(RuntimeError):
            with unit_of_work(db):
                allocate_invoice_number(db, business.id)
                raise RuntimeError("insert failed")

        assert db.query(Business).filter(Business.id == business.id).one().invoice_next_number == 1

    def test_missing_business(self, db):
        with pytest.raises(NotFoundError):
            with unit_of_work(db):
                allocate_invoice_number(db, 999)

    def test_first_number_uses_business_settings(self, db):
        business = records.create_business(
            db,
            BusinessCreate(name="Seventh Heaven", invoice_prefix="INV-", invoice_next_number=7, invoice_number_padding=5),
        )
        shop = records.create_shop(db, ShopCreate(business_id=business.id, name="Counter 1"))

        invoice = create_invoice(db, make_invoice_data(business.id, shop.id))

        assert invoice.number == "INV-00007"
        assert db.query(Business).filter(Business.id == business.id).one().invoice_next_number == 8


def test_concurrent_creates_get_distinct_increasing_numbers(db, session_factory, business, shop):
    """Eight creators racing on one business: no duplicates, no gaps, commit order == number order."""
    business_id, shop_id = business.id, shop.id
    workers = 8

    def create_one(_):
        session = session_factory()
        try:
            return create_invoice(session, make_invoice_data(business_id, shop_id)).number
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=workers) as pool:
        numbers = list(pool.map(create_one, range(workers)))

    expected = [f"INV-{n:04d}" for n in range(1, workers + 1)]
    assert sorted(numbers) == expected

    # the fixture objects were loaded before the other sessions committed
    db.expire_all()
    by_insert_order = [inv.number for inv in db.query(Invoice).order_by(Invoice.id)]
    assert by_insert_order == expected
    assert db.query(Business).filter(Business.id == business_id).one().invoice_next_number == workers + 1


def test_businesses_number_independently(db, business, shop):
    other = records.create_business(db, BusinessCreate(name="Other Co", invoice_prefix="OC/"))
    other_shop = records.create_shop(db, ShopCreate(business_id=other.id, name="Only shop"))

    a1 = create_invoice(db, make_invoice_data(business.id, shop.id))
    b1 = create_invoice(db, make_invoice_data(other.id, other_shop.id))
    a2 = create_invoice(db, make_invoice_data(business.id, shop.id))

    assert (a1.number, a2.number) == ("INV-0001", "INV-0002")
    assert b1.number == "OC/0001"


def test_value_rejected_by_database_becomes_validation_error(db, business):
    with pytest.raises(ValidationError):
        with unit_of_work(db):
            allocate_invoice_number(db, business.id)
            raise DataError("INSERT INTO invoice_items ...", {}, Exception("numeric field overflow"))

    assert db.query(Business).filter(Business.id == business.id).one().invoice_next_number == 1
