"""Reference records: businesses, shops, customers, products.

Thin CRUD around the models. Business settings updates are the only place
besides number allocation that writes the invoice counter.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Tuple, Type

from sqlalchemy import or_
from sqlalchemy.orm import Session

from shopbill.core.audit import AuditLog
from shopbill.core.config import settings
from shopbill.core.exceptions import NotFoundError, ValidationError
from shopbill.db.session import unit_of_work
from shopbill.models.business import Business
from shopbill.models.customer import Customer
from shopbill.models.invoice import TaxType
from shopbill.models.product import Product
from shopbill.models.shop import Shop
from shopbill.services.calculator import CENT, MAX_MONEY, MAX_RATE, check_limit, to_decimal

logger = logging.getLogger(__name__)

MAX_INVOICE_PADDING = 12
COUNTER_FIELDS = ("invoice_prefix", "invoice_next_number", "invoice_number_padding")


def _changes(data) -> Dict[str, Any]:
    """Fields explicitly sent in a pydantic update model."""
    return data.model_dump(exclude_unset=True)


def _require_name(value: Optional[str], what: str = "name") -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{what} cannot be empty")
    return str(value).strip()


def _get(db: Session, model: Type, record_id: int, resource: str):
    record = db.query(model).filter(model.id == record_id).first()
    if not record:
        raise NotFoundError(resource, record_id)
    return record


def _require_business(db: Session, business_id: int) -> None:
    if not db.query(Business.id).filter(Business.id == business_id).first():
        raise NotFoundError("Business", business_id)


def _tax_type(value: Any) -> str:
    try:
        return TaxType(str(value).upper()).value
    except ValueError:
        raise ValidationError("tax_type must be one of GST, VAT, NONE")


def _non_negative(value: Any, field: str, limit: Decimal = MAX_MONEY) -> Decimal:
    """Money or rate value rounded to cents and within its column's range."""
    amount = check_limit(to_decimal(value, field), field, limit).quantize(CENT, rounding=ROUND_HALF_UP)
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative")
    return check_limit(amount, field, limit)


def _validate_counter(values: Dict[str, Any]) -> None:
    if values.get("invoice_next_number") is not None and values["invoice_next_number"] < 1:
        raise ValidationError("invoice_next_number must be at least 1")
    padding = values.get("invoice_number_padding")
    if padding is not None and not 0 <= padding <= MAX_INVOICE_PADDING:
        raise ValidationError(f"invoice_number_padding must be between 0 and {MAX_INVOICE_PADDING}")


# ----------------------------------------------------------------------------
# Businesses
# ----------------------------------------------------------------------------

def create_business(db: Session, data) -> Business:
    values = data.model_dump()
    values["name"] = _require_name(values["name"])
    if values.get("invoice_prefix") is None:
        values["invoice_prefix"] = settings.DEFAULT_INVOICE_PREFIX
    if values.get("invoice_number_padding") is None:
        values["invoice_number_padding"] = settings.DEFAULT_INVOICE_PADDING
    _validate_counter(values)
    values["default_tax_type"] = _tax_type(values["default_tax_type"])
    values["default_tax_rate"] = _non_negative(values["default_tax_rate"], "default_tax_rate", MAX_RATE)

    with unit_of_work(db):
        business = Business(**values)
        db.add(business)
        db.flush()

    logger.info(f"[BUSINESS] Created business {business.id} ({business.name})")
    return business


def get_business(db: Session, business_id: int) -> Business:
    with unit_of_work(db):
        return _get(db, Business, business_id, "Business")


def update_business_settings(db: Session, business_id: int, data) -> Business:
    """
    Partial update. Editing the invoice counter here is an administrative
    action and may move it backwards; numbers already issued stay unique
    through the (business, number) constraint.
    """
    values = _changes(data)
    if not values:
        raise ValidationError("No fields to update")
    if "name" in values:
        values["name"] = _require_name(values["name"])
    if values.get("invoice_prefix", "") is None:
        raise ValidationError("invoice_prefix cannot be null")
    for field in ("invoice_next_number", "invoice_number_padding", "currency", "default_tax_type", "default_tax_rate"):
        if field in values and values[field] is None:
            raise ValidationError(f"{field} cannot be null")
    _validate_counter(values)
    if "default_tax_type" in values:
        values["default_tax_type"] = _tax_type(values["default_tax_type"])
    if "default_tax_rate" in values:
        values["default_tax_rate"] = _non_negative(values["default_tax_rate"], "default_tax_rate", MAX_RATE)

    with unit_of_work(db):
        # Locked so a settings edit cannot interleave with a number allocation
        business = (
            db.query(Business)
            .filter(Business.id == business_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if not business:
            raise NotFoundError("Business", business_id)
        before = {field: getattr(business, field) for field in COUNTER_FIELDS}
        for field, value in values.items():
            setattr(business, field, value)
        db.flush()

    counter_changes = {
        field: [before[field], values[field]]
        for field in COUNTER_FIELDS
        if field in values and values[field] != before[field]
    }
    logger.info(f"[BUSINESS] Updated business {business_id}: {sorted(values)}")
    AuditLog.log_action(
        "update", "business", business_id,
        business_id=business_id,
        changes=counter_changes or None,
    )
    return business


# ----------------------------------------------------------------------------
# Shops
# ----------------------------------------------------------------------------

def create_shop(db: Session, data) -> Shop:
    values = data.model_dump()
    values["name"] = _require_name(values["name"])
    with unit_of_work(db):
        _require_business(db, values["business_id"])
        shop = Shop(**values)
        db.add(shop)
        db.flush()
    logger.info(f"[SHOP] Created shop {shop.id} for business {shop.business_id}")
    return shop


def get_shop(db: Session, shop_id: int) -> Shop:
    with unit_of_work(db):
        return _get(db, Shop, shop_id, "Shop")


def update_shop(db: Session, shop_id: int, data) -> Shop:
    values = _changes(data)
    if not values:
        raise ValidationError("No fields to update")
    if "name" in values:
        values["name"] = _require_name(values["name"])
    with unit_of_work(db):
        shop = _get(db, Shop, shop_id, "Shop")
        for field, value in values.items():
            setattr(shop, field, value)
        db.flush()
    return shop


# ----------------------------------------------------------------------------
# Customers
# ----------------------------------------------------------------------------

def create_customer(db: Session, data) -> Customer:
    values = data.model_dump()
    values["name"] = _require_name(values["name"])
    with unit_of_work(db):
        _require_business(db, values["business_id"])
        customer = Customer(**values)
        db.add(customer)
        db.flush()
    logger.info(f"[CUSTOMER] Created customer {customer.id} for business {customer.business_id}")
    return customer


def list_customers(
    db: Session,
    business_id: Optional[int] = None,
    search: Optional[str] = None,
    limit: int = settings.LIST_LIMIT_DEFAULT,
    offset: int = 0,
) -> Tuple[List[Customer], int]:
    """Newest first; `search` matches name, email or phone."""
    limit = min(max(int(limit), 1), settings.LIST_LIMIT_MAX)
    offset = max(int(offset), 0)
    with unit_of_work(db):
        q = db.query(Customer)
        if business_id is not None:
            q = q.filter(Customer.business_id == business_id)
        if search and search.strip():
            like = f"%{search.strip()}%"
            q = q.filter(or_(Customer.name.ilike(like), Customer.email.ilike(like), Customer.phone.ilike(like)))
        total = q.count()
        rows = q.order_by(Customer.created_at.desc(), Customer.id.desc()).limit(limit).offset(offset).all()
    return rows, total


def get_customer(db: Session, customer_id: int) -> Customer:
    with unit_of_work(db):
        return _get(db, Customer, customer_id, "Customer")


def update_customer(db: Session, customer_id: int, data) -> Customer:
    values = _changes(data)
    if not values:
        raise ValidationError("No fields to update")
    if "name" in values:
        values["name"] = _require_name(values["name"])
    with unit_of_work(db):
        customer = _get(db, Customer, customer_id, "Customer")
        for field, value in values.items():
            setattr(customer, field, value)
        db.flush()
    return customer


def delete_customer(db: Session, customer_id: int) -> None:
    """Invoices keep their rows; their customer reference is cleared by the FK."""
    with unit_of_work(db):
        deleted = db.query(Customer).filter(Customer.id == customer_id).delete()
        if deleted == 0:
            raise NotFoundError("Customer", customer_id)
    logger.info(f"[CUSTOMER] Deleted customer {customer_id}")


# ----------------------------------------------------------------------------
# Products
# ----------------------------------------------------------------------------

def _product_values(values: Dict[str, Any]) -> Dict[str, Any]:
    if "name" in values:
        values["name"] = _require_name(values["name"])
    if "unit_price" in values:
        values["unit_price"] = _non_negative(values["unit_price"], "unit_price")
    if "tax_rate" in values:
        values["tax_rate"] = _non_negative(values["tax_rate"], "tax_rate", MAX_RATE)
    if "tax_type" in values:
        values["tax_type"] = _tax_type(values["tax_type"])
    return values


def create_product(db: Session, data) -> Product:
    values = _product_values(data.model_dump())
    with unit_of_work(db):
        _require_business(db, values["business_id"])
        product = Product(**values)
        db.add(product)
        db.flush()
    logger.info(f"[PRODUCT] Created product {product.id} ({product.name}) for business {product.business_id}")
    return product


def list_products(
    db: Session,
    business_id: Optional[int] = None,
    search: Optional[str] = None,
    limit: int = settings.LIST_LIMIT_DEFAULT,
    offset: int = 0,
) -> List[Product]:
    """Newest first; `search` matches name or SKU."""
    limit = min(max(int(limit), 1), settings.LIST_LIMIT_MAX)
    offset = max(int(offset), 0)
    with unit_of_work(db):
        q = db.query(Product)
        if business_id is not None:
            q = q.filter(Product.business_id == business_id)
        if search and search.strip():
            like = f"%{search.strip()}%"
            q = q.filter(or_(Product.name.ilike(like), Product.sku.ilike(like)))
        return q.order_by(Product.created_at.desc(), Product.id.desc()).limit(limit).offset(offset).all()


def get_product(db: Session, product_id: int) -> Product:
    with unit_of_work(db):
        return _get(db, Product, product_id, "Product")


def update_product(db: Session, product_id: int, data) -> Product:
    """Existing invoice items are snapshots and are not touched."""
    values = _changes(data)
    if not values:
        raise ValidationError("No fields to update")
    for field in ("unit_price", "tax_rate", "tax_type"):
        if field in values and values[field] is None:
            raise ValidationError(f"{field} cannot be null")
    values = _product_values(values)
    with unit_of_work(db):
        product = _get(db, Product, product_id, "Product")
        for field, value in values.items():
            setattr(product, field, value)
        db.flush()
    return product


def delete_product(db: Session, product_id: int) -> None:
    """Invoice items keep their snapshot; their product reference is cleared by the FK."""
    with unit_of_work(db):
        deleted = db.query(Product).filter(Product.id == product_id).delete()
        if deleted == 0:
            raise NotFoundError("Product", product_id)
    logger.info(f"[PRODUCT] Deleted product {product_id}")
