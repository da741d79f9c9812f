from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from decimal import Decimal


class BusinessCreate(BaseModel):
    name: str
    legal_name: Optional[str] = None
    gst_number: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = "IN"
    pincode: Optional[str] = None
    currency: str = "INR"
    default_tax_type: str = "GST"
    default_tax_rate: Decimal = Decimal("0")
    invoice_prefix: Optional[str] = None  # defaults from settings
    invoice_next_number: int = 1
    invoice_number_padding: Optional[int] = None  # defaults from settings


class BusinessUpdate(BaseModel):
    name: Optional[str] = None
    legal_name: Optional[str] = None
    gst_number: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    pincode: Optional[str] = None
    currency: Optional[str] = None
    default_tax_type: Optional[str] = None
    default_tax_rate: Optional[Decimal] = None
    invoice_prefix: Optional[str] = None
    invoice_next_number: Optional[int] = None
    invoice_number_padding: Optional[int] = None


class BusinessResponse(BaseModel):
    id: int
    name: str
    legal_name: Optional[str] = None
    gst_number: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    pincode: Optional[str] = None
    currency: str
    default_tax_type: str
    default_tax_rate: Decimal
    invoice_prefix: str
    invoice_next_number: int
    invoice_number_padding: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
