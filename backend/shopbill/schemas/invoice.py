from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal

from shopbill.models.invoice import InvoiceStatus


class InvoiceItemIn(BaseModel):
    product_id: Optional[int] = None
    description: str = ""
    quantity: Optional[Decimal] = None
    unit_price: Optional[Decimal] = None
    discount: Optional[Decimal] = None
    tax_rate: Optional[Decimal] = None
    tax_type: Optional[str] = None  # GST | VAT | NONE, checked by the calculator


class InvoiceCreate(BaseModel):
    business_id: int
    shop_id: int
    customer_id: Optional[int] = None
    items: List[InvoiceItemIn] = Field(default_factory=list)
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    notes: Optional[str] = None
    status: InvoiceStatus = InvoiceStatus.ISSUED


class InvoiceReplace(BaseModel):
    business_id: int
    shop_id: int
    customer_id: Optional[int] = None
    items: List[InvoiceItemIn] = Field(default_factory=list)
    issue_date: Optional[date] = None  # omitted keeps the current issue date
    due_date: Optional[date] = None
    notes: Optional[str] = None
    status: Optional[InvoiceStatus] = None  # omitted keeps the current status


class InvoicePatch(BaseModel):
    status: Optional[InvoiceStatus] = None
    amount_paid: Optional[Decimal] = None


class InvoiceItemResponse(BaseModel):
    id: int
    product_id: Optional[int] = None
    description: str
    quantity: Decimal
    unit_price: Decimal
    discount: Decimal
    tax_rate: Decimal
    tax_type: str
    line_total: Decimal

    class Config:
        from_attributes = True


class InvoiceSummary(BaseModel):
    id: int
    number: str
    status: str
    business_id: int
    shop_id: int
    customer_id: Optional[int] = None
    customer_name: Optional[str] = None
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    sub_total: Decimal
    discount_total: Decimal
    tax_total: Decimal
    grand_total: Decimal
    amount_paid: Decimal
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class InvoiceResponse(InvoiceSummary):
    notes: Optional[str] = None
    items: List[InvoiceItemResponse] = Field(default_factory=list)


class InvoiceListResponse(BaseModel):
    data: List[InvoiceSummary]
    total: int
