"""
Invoice and its line items.

Status flow is DRAFT -> ISSUED -> PARTIALLY_PAID / PAID / OVERDUE, with VOID
reachable from anywhere. Transitions are only enforced when
STRICT_STATUS_TRANSITIONS is on (see services.invoice_service).
"""
import enum

from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, DateTime, Date, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from shopbill.db.base import Base
from shopbill.models._common import utcnow


class InvoiceStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    ISSUED = "ISSUED"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    VOID = "VOID"


class TaxType(str, enum.Enum):
    GST = "GST"
    VAT = "VAT"
    NONE = "NONE"


class Invoice(Base):
    __tablename__ = "invoices"
    __table_args__ = (
        UniqueConstraint("business_id", "number", name="uq_invoices_business_number"),
    )

    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(Integer, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    shop_id = Column(Integer, ForeignKey("shops.id", ondelete="CASCADE"), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="SET NULL"), nullable=True)
    number = Column(String(64), nullable=False)
    status = Column(String(32), nullable=False, default=InvoiceStatus.ISSUED.value)
    issue_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    # Derived from items; grand_total = sub_total - discount_total + tax_total
    sub_total = Column(Numeric(12, 2), nullable=False, default=0)
    discount_total = Column(Numeric(12, 2), nullable=False, default=0)
    tax_total = Column(Numeric(12, 2), nullable=False, default=0)
    grand_total = Column(Numeric(12, 2), nullable=False, default=0)
    amount_paid = Column(Numeric(12, 2), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    business = relationship("Business", backref="invoices")
    shop = relationship("Shop")
    customer = relationship("Customer")
    items = relationship(
        "InvoiceItem",
        back_populates="invoice",
        order_by="InvoiceItem.id",
        cascade="all, delete-orphan",
    )

    @property
    def customer_name(self):
        return self.customer.name if self.customer else None


class InvoiceItem(Base):
    """One billed line. Stores its own snapshot of description, price and tax."""

    __tablename__ = "invoice_items"

    id = Column(Integer, primary_key=True, index=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True)
    description = Column(String(512), nullable=False)
    quantity = Column(Numeric(12, 3), nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    discount = Column(Numeric(12, 2), nullable=False, default=0)
    tax_rate = Column(Numeric(5, 2), nullable=False, default=0)
    tax_type = Column(String(8), nullable=False, default=TaxType.GST.value)
    line_total = Column(Numeric(12, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    invoice = relationship("Invoice", back_populates="items")
