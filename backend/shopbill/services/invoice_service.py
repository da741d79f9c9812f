"""Invoice lifecycle: create, replace, status/payment patch, delete, read.

Every mutation runs inside one unit of work. Totals come from
services.calculator, numbers from services.numbering; nothing here computes
money on its own.
"""
import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, List, Optional, Sequence, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session, contains_eager

from shopbill.core.audit import AuditLog
from shopbill.core.config import settings
from shopbill.core.exceptions import ConflictError, NotFoundError, ValidationError
from shopbill.db.session import unit_of_work
from shopbill.models._common import utcnow
from shopbill.models.business import Business
from shopbill.models.customer import Customer
from shopbill.models.idempotency import IdempotencyKey
from shopbill.models.invoice import Invoice, InvoiceItem, InvoiceStatus
from shopbill.models.product import Product
from shopbill.models.shop import Shop
from shopbill.services.calculator import (
    InvoiceTotals,
    LineInput,
    LineResult,
    check_limit,
    price_items,
    round_money,
    to_decimal,
)
from shopbill.services.numbering import allocate_invoice_number, lock_business

logger = logging.getLogger(__name__)

QUANTITY_STEP = Decimal("0.001")

# Used only when STRICT_STATUS_TRANSITIONS is on. Staying in the same status
# is always allowed.
ALLOWED_TRANSITIONS = {
    InvoiceStatus.DRAFT: {InvoiceStatus.ISSUED, InvoiceStatus.VOID},
    InvoiceStatus.ISSUED: {
        InvoiceStatus.PARTIALLY_PAID, InvoiceStatus.PAID, InvoiceStatus.OVERDUE, InvoiceStatus.VOID,
    },
    InvoiceStatus.PARTIALLY_PAID: {InvoiceStatus.PAID, InvoiceStatus.OVERDUE, InvoiceStatus.VOID},
    InvoiceStatus.OVERDUE: {InvoiceStatus.PARTIALLY_PAID, InvoiceStatus.PAID, InvoiceStatus.VOID},
    InvoiceStatus.PAID: {InvoiceStatus.PARTIALLY_PAID},
    InvoiceStatus.VOID: set(),
}


def _status(value: Any) -> InvoiceStatus:
    if isinstance(value, InvoiceStatus):
        return value
    try:
        return InvoiceStatus(str(value).upper())
    except ValueError:
        raise ValidationError(f"Unknown invoice status {value!r}")


def check_transition(current: Any, target: Any, strict: Optional[bool] = None) -> InvoiceStatus:
    """Return `target` as an InvoiceStatus, rejecting it in strict mode if not allowed."""
    target = _status(target)
    if strict is None:
        strict = settings.STRICT_STATUS_TRANSITIONS
    if not strict or current is None:
        return target
    current = _status(current)
    if target is current or target in ALLOWED_TRANSITIONS[current]:
        return target
    raise ValidationError(f"Cannot change invoice status from {current.value} to {target.value}")


def _hydrate(invoice: Invoice) -> Invoice:
    # Load what the response serialises while the transaction is still open
    _ = invoice.customer, invoice.items
    return invoice


def _lock_invoice(db: Session, invoice_id: int) -> Invoice:
    invoice = (
        db.query(Invoice)
        .filter(Invoice.id == invoice_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if not invoice:
        raise NotFoundError("Invoice", invoice_id)
    return invoice


def _check_references(
    db: Session,
    business_id: int,
    shop_id: int,
    customer_id: Optional[int],
    lines: Sequence[LineInput],
) -> None:
    """Shop, customer and products must exist and belong to the business."""
    shop = db.query(Shop.id).filter(Shop.id == shop_id, Shop.business_id == business_id).first()
    if not shop:
        raise NotFoundError("Shop", shop_id, business_id=business_id)

    if customer_id is not None:
        customer = (
            db.query(Customer.id)
            .filter(Customer.id == customer_id, Customer.business_id == business_id)
            .first()
        )
        if not customer:
            raise NotFoundError("Customer", customer_id, business_id=business_id)

    product_ids = {line.product_id for line in lines if line.product_id is not None}
    if product_ids:
        found = {
            row.id
            for row in db.query(Product.id).filter(
                Product.business_id == business_id, Product.id.in_(product_ids)
            )
        }
        missing = sorted(product_ids - found)
        if missing:
            raise NotFoundError("Product", missing[0], business_id=business_id)


def _build_items(lines: Sequence[LineInput], results: Sequence[LineResult]) -> List[InvoiceItem]:
    return [
        InvoiceItem(
            product_id=line.product_id,
            description=line.description,
            quantity=line.quantity.quantize(QUANTITY_STEP),
            unit_price=round_money(line.unit_price),
            discount=round_money(line.discount),
            tax_rate=line.tax_rate,
            tax_type=line.tax_type.value,
            line_total=round_money(result.line_total),
        )
        for line, result in zip(lines, results)
    ]


def _apply_totals(invoice: Invoice, totals: InvoiceTotals) -> None:
    invoice.sub_total = totals.sub_total
    invoice.discount_total = totals.discount_total
    invoice.tax_total = totals.tax_total
    invoice.grand_total = totals.grand_total


def _replay_idempotent(db: Session, business_id: int, key: str) -> Optional[Invoice]:
    """Invoice created earlier with `key` inside the window, if any.

    An expired key (or one whose invoice is gone) is removed so the key can
    be reused.
    """
    record = (
        db.query(IdempotencyKey)
        .filter(IdempotencyKey.business_id == business_id, IdempotencyKey.key == key)
        .first()
    )
    if not record:
        return None

    created_at = record.created_at
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=utcnow().tzinfo)
    window = timedelta(seconds=settings.IDEMPOTENCY_WINDOW_SECONDS)
    if utcnow() - created_at <= window:
        invoice = db.query(Invoice).filter(Invoice.id == record.invoice_id).first()
        if invoice:
            return invoice

    db.delete(record)
    db.flush()
    return None


def _create_once(
    db: Session,
    data,
    lines: Sequence[LineInput],
    results: Sequence[LineResult],
    totals: InvoiceTotals,
    idempotency_key: Optional[str],
) -> Tuple[Invoice, bool]:
    with unit_of_work(db):
        # Held until commit: serialises numbering and key checks per business
        business = lock_business(db, data.business_id)

        if idempotency_key:
            existing = _replay_idempotent(db, business.id, idempotency_key)
            if existing:
                logger.info(
                    f"[INVOICE] Idempotency key {idempotency_key!r} replayed invoice {existing.id} "
                    f"for business {business.id}"
                )
                return _hydrate(existing), False

        _check_references(db, business.id, data.shop_id, data.customer_id, lines)
        number = allocate_invoice_number(db, business.id)

        invoice = Invoice(
            business_id=business.id,
            shop_id=data.shop_id,
            customer_id=data.customer_id,
            number=number,
            status=_status(data.status or InvoiceStatus.ISSUED).value,
            issue_date=data.issue_date or date.today(),
            due_date=data.due_date,
            notes=data.notes,
            amount_paid=Decimal("0.00"),
            items=_build_items(lines, results),
        )
        _apply_totals(invoice, totals)
        db.add(invoice)
        db.flush()

        if idempotency_key:
            db.add(IdempotencyKey(business_id=business.id, key=idempotency_key, invoice_id=invoice.id))
            db.flush()

        _hydrate(invoice)
    return invoice, True


def create_invoice(db: Session, data, idempotency_key: Optional[str] = None) -> Invoice:
    """
    Create an invoice with its items and a freshly allocated number.

    Items are validated and priced before any transaction is opened. The
    number allocation, invoice insert, item inserts and counter increment
    commit together or not at all. A ConflictError (number or key
    collision) rolls everything back and the creation is retried once.

    Args:
        data: InvoiceCreate (business_id, shop_id, customer_id, items,
            issue_date, due_date, notes, status)
        idempotency_key: optional client token; a repeat inside
            IDEMPOTENCY_WINDOW_SECONDS returns the first invoice.

    Raises:
        ValidationError, NotFoundError, ConflictError, TransientStorageError
    """
    lines, results, totals = price_items(data.items)

    attempt = 0
    while True:
        attempt += 1
        try:
            invoice, created = _create_once(db, data, lines, results, totals, idempotency_key)
            break
        except ConflictError as e:
            if attempt >= 2:
                logger.error(f"[INVOICE] Create for business {data.business_id} conflicted twice: {e}")
                raise
            logger.warning(f"[INVOICE] Create for business {data.business_id} conflicted, retrying once")

    if created:
        logger.info(
            f"[INVOICE] Created {invoice.number} (id={invoice.id}) for business {invoice.business_id}, "
            f"grand_total={invoice.grand_total}"
        )
        AuditLog.log_action(
            "create", "invoice", invoice.id,
            business_id=invoice.business_id,
            changes={"number": invoice.number, "grand_total": invoice.grand_total, "items": len(lines)},
        )
    return invoice


def replace_invoice(db: Session, invoice_id: int, data) -> Invoice:
    """
    Full edit: new header fields, recomputed totals, and the item set
    replaced by delete-all then insert. The number and amount_paid are kept.
    Omitted issue_date and status keep their current values.

    Raises:
        NotFoundError: invoice (checked first, before any write), business,
            shop, customer or product missing.
    """
    lines, results, totals = price_items(data.items)

    with unit_of_work(db):
        invoice = _lock_invoice(db, invoice_id)

        if not db.query(Business.id).filter(Business.id == data.business_id).first():
            raise NotFoundError("Business", data.business_id)
        _check_references(db, data.business_id, data.shop_id, data.customer_id, lines)

        previous_status = invoice.status
        if data.status is not None:
            try:
                invoice.status = check_transition(previous_status, data.status).value
            except ValidationError as e:
                AuditLog.log_rejected("replace", "invoice", invoice_id, e.message)
                raise

        invoice.business_id = data.business_id
        invoice.shop_id = data.shop_id
        invoice.customer_id = data.customer_id
        if data.issue_date is not None:
            invoice.issue_date = data.issue_date
        invoice.due_date = data.due_date
        invoice.notes = data.notes
        _apply_totals(invoice, totals)

        db.query(InvoiceItem).filter(InvoiceItem.invoice_id == invoice.id).delete()
        db.expire(invoice, ["items", "customer"])
        invoice.items = _build_items(lines, results)
        db.flush()
        _hydrate(invoice)

    logger.info(f"[INVOICE] Replaced {invoice.number} (id={invoice.id}) with {len(lines)} items")
    AuditLog.log_action(
        "replace", "invoice", invoice.id,
        business_id=invoice.business_id,
        changes={"grand_total": invoice.grand_total, "items": len(lines), "status": invoice.status},
    )
    return invoice


def apply_status_or_payment(
    db: Session,
    invoice_id: int,
    status: Any = None,
    amount_paid: Any = None,
) -> Invoice:
    """
    Patch status and/or amount_paid under a row lock on the invoice.

    - status omitted: keep the current status
    - resolved status PAID with amount_paid omitted: amount_paid = grand_total
    - amount_paid given: stored as given (rounded to cents, never clamped
      to grand_total, so overpayment is recorded)
    - nothing changes: no write; the current row is returned

    Raises:
        NotFoundError: invoice missing.
        ValidationError: negative/non-numeric amount, unknown status, or a
            blocked transition in strict mode.
    """
    with unit_of_work(db):
        invoice = _lock_invoice(db, invoice_id)
        current_status = invoice.status
        current_paid = invoice.amount_paid

        new_status = _status(status).value if status is not None else current_status
        if new_status == InvoiceStatus.PAID.value and amount_paid is None:
            new_paid = invoice.grand_total
        elif amount_paid is not None:
            requested = check_limit(to_decimal(amount_paid, "amount_paid"), "amount_paid")
            new_paid = check_limit(round_money(requested), "amount_paid")
            if new_paid < 0:
                raise ValidationError("amount_paid cannot be negative")
        else:
            new_paid = current_paid

        if new_status == current_status and new_paid == current_paid:
            logger.info(f"[INVOICE] No changes to apply for invoice {invoice_id}")
            return _hydrate(invoice)

        if new_status != current_status:
            try:
                check_transition(current_status, new_status)
            except ValidationError as e:
                AuditLog.log_rejected("status", "invoice", invoice_id, e.message)
                raise

        invoice.status = new_status
        invoice.amount_paid = new_paid
        db.flush()
        _hydrate(invoice)

    logger.info(
        f"[INVOICE] Invoice {invoice_id}: status {current_status} -> {new_status}, "
        f"amount_paid {current_paid} -> {new_paid}"
    )
    AuditLog.log_action(
        "status", "invoice", invoice.id,
        business_id=invoice.business_id,
        changes={"status": [current_status, new_status], "amount_paid": [current_paid, new_paid]},
    )
    return invoice


def delete_invoice(db: Session, invoice_id: int) -> None:
    """
    Delete an invoice: idempotency keys and items first, then the invoice,
    in one transaction. Does not rely on database-level cascades.

    Raises:
        NotFoundError: no invoice row was deleted.
    """
    with unit_of_work(db):
        db.query(IdempotencyKey).filter(IdempotencyKey.invoice_id == invoice_id).delete()
        items_deleted = db.query(InvoiceItem).filter(InvoiceItem.invoice_id == invoice_id).delete()
        deleted = db.query(Invoice).filter(Invoice.id == invoice_id).delete()
        if deleted == 0:
            raise NotFoundError("Invoice", invoice_id)

    logger.info(f"[INVOICE] Deleted invoice {invoice_id} and {items_deleted} items")
    AuditLog.log_action("delete", "invoice", invoice_id, changes={"items": items_deleted})


def get_invoice(db: Session, invoice_id: int) -> Invoice:
    """Invoice with items and customer loaded."""
    with unit_of_work(db):
        invoice = db.query(Invoice).filter(Invoice.id == invoice_id).first()
        if not invoice:
            raise NotFoundError("Invoice", invoice_id)
        _hydrate(invoice)
    return invoice


def list_invoices(
    db: Session,
    business_id: Optional[int] = None,
    shop_id: Optional[int] = None,
    search: Optional[str] = None,
    limit: int = settings.LIST_LIMIT_DEFAULT,
    offset: int = 0,
) -> Tuple[List[Invoice], int]:
    """Newest first. `search` matches invoice number or customer name."""
    limit = min(max(int(limit), 1), settings.LIST_LIMIT_MAX)
    offset = max(int(offset), 0)

    with unit_of_work(db):
        q = db.query(Invoice).outerjoin(Customer, Customer.id == Invoice.customer_id)
        if business_id is not None:
            q = q.filter(Invoice.business_id == business_id)
        if shop_id is not None:
            q = q.filter(Invoice.shop_id == shop_id)
        if search and search.strip():
            like = f"%{search.strip()}%"
            q = q.filter(or_(Invoice.number.ilike(like), Customer.name.ilike(like)))

        total = q.count()
        rows = (
            q.options(contains_eager(Invoice.customer))
            .order_by(Invoice.created_at.desc(), Invoice.id.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )
    return rows, total
