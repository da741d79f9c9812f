from sqlalchemy import Column, Integer, String, Numeric, DateTime
from shopbill.db.base import Base
from shopbill.models._common import utcnow


class Business(Base):
    """Tenant record. Owns shops, customers, products, invoices and the invoice counter."""

    __tablename__ = "businesses"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    legal_name = Column(String(255), nullable=True)
    gst_number = Column(String(32), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(64), nullable=True)
    address = Column(String(512), nullable=True)
    city = Column(String(128), nullable=True)
    state = Column(String(128), nullable=True)
    country = Column(String(64), nullable=True, default="IN")
    pincode = Column(String(16), nullable=True)
    currency = Column(String(8), nullable=False, default="INR")  # display only
    default_tax_type = Column(String(8), nullable=False, default="GST")
    default_tax_rate = Column(Numeric(5, 2), nullable=False, default=0)
    # Invoice numbering: number = prefix + zero-padded next_number
    invoice_prefix = Column(String(32), nullable=False, default="INV-")
    invoice_next_number = Column(Integer, nullable=False, default=1)
    invoice_number_padding = Column(Integer, nullable=False, default=4)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
