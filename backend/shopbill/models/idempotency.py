"""
Client-supplied idempotency keys for invoice creation.

A retried POST carrying the same key inside the configured window returns the
invoice created by the first attempt instead of allocating a new number.
"""
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, UniqueConstraint
from shopbill.db.base import Base
from shopbill.models._common import utcnow


class IdempotencyKey(Base):
    __tablename__ = "invoice_idempotency_keys"
    __table_args__ = (
        UniqueConstraint("business_id", "key", name="uq_idempotency_business_key"),
    )

    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(Integer, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)
    key = Column(String(128), nullable=False)
    invoice_id = Column(Integer, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
