from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from decimal import Decimal


class ProductCreate(BaseModel):
    business_id: int
    name: str
    sku: Optional[str] = None
    description: Optional[str] = None
    unit_price: Decimal
    tax_rate: Decimal = Decimal("0")
    tax_type: str = "GST"
    hsn_code: Optional[str] = None
    is_active: bool = True


class ProductUpdate(BaseModel):
    name: Optional[str] = None
    sku: Optional[str] = None
    description: Optional[str] = None
    unit_price: Optional[Decimal] = None
    tax_rate: Optional[Decimal] = None
    tax_type: Optional[str] = None
    hsn_code: Optional[str] = None
    is_active: Optional[bool] = None


class ProductResponse(BaseModel):
    id: int
    business_id: int
    name: str
    sku: Optional[str] = None
    description: Optional[str] = None
    unit_price: Decimal
    tax_rate: Decimal
    tax_type: str
    hsn_code: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
