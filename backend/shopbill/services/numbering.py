"""Invoice number allocation.

Each business owns a counter (`invoice_next_number`). Allocation locks the
business row, formats the number and advances the counter inside the
caller's transaction. Concurrent allocations for the same business queue on
the row lock, so numbers come out in commit order with no duplicates. If the
surrounding transaction rolls back, the counter rolls back with it.
"""
import logging
from sqlalchemy.orm import Session

from shopbill.core.exceptions import NotFoundError
from shopbill.models.business import Business

logger = logging.getLogger(__name__)


def format_invoice_number(prefix: str | None, next_number: int, padding: int | None) -> str:
    """`("INV-", 42, 5)` -> `"INV-00042"`. Numbers wider than the padding are not truncated."""
    width = max(int(padding or 0), 0)
    return f"{prefix or ''}{int(next_number):0{width}d}"


def lock_business(db: Session, business_id: int) -> Business:
    """Load the business with an exclusive row lock held until commit/rollback."""
    business = (
        db.query(Business)
        .filter(Business.id == business_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if not business:
        raise NotFoundError("Business", business_id)
    return business


def allocate_invoice_number(db: Session, business_id: int) -> str:
    """Reserve the next invoice number for `business_id`.

    Must run inside an open unit of work; the counter increment is flushed
    but not committed.

    Raises:
        NotFoundError: if the business does not exist.
    """
    business = lock_business(db, business_id)
    next_number = business.invoice_next_number or 1
    number = format_invoice_number(business.invoice_prefix, next_number, business.invoice_number_padding)

    business.invoice_next_number = next_number + 1
    db.flush()

    logger.info(f"[NUMBERING] business={business_id} allocated {number}, next={business.invoice_next_number}")
    return number
