"""Invoices: create, list, read, full edit, status/payment patch, delete."""
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, status
from sqlalchemy.orm import Session

from shopbill.api.deps import get_db
from shopbill.core.config import settings
from shopbill.schemas.invoice import (
    InvoiceCreate,
    InvoiceListResponse,
    InvoicePatch,
    InvoiceReplace,
    InvoiceResponse,
)
from shopbill.services import invoice_service

router = APIRouter()


@router.post("", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
def create_invoice(
    data: InvoiceCreate,
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
    db: Session = Depends(get_db),
):
    """Create an invoice. Repeating a request with the same Idempotency-Key returns the first invoice."""
    return invoice_service.create_invoice(db, data, idempotency_key=idempotency_key)


@router.get("", response_model=InvoiceListResponse)
def list_invoices(
    business_id: Optional[int] = Query(None, alias="businessId"),
    shop_id: Optional[int] = Query(None, alias="shopId"),
    search: Optional[str] = Query(None),
    limit: int = Query(settings.LIST_LIMIT_DEFAULT),
    offset: int = Query(0),
    db: Session = Depends(get_db),
):
    rows, total = invoice_service.list_invoices(
        db, business_id=business_id, shop_id=shop_id, search=search, limit=limit, offset=offset,
    )
    return {"data": rows, "total": total}


@router.get("/{invoice_id}", response_model=InvoiceResponse)
def get_invoice(invoice_id: int, db: Session = Depends(get_db)):
    return invoice_service.get_invoice(db, invoice_id)


@router.put("/{invoice_id}", response_model=InvoiceResponse)
def replace_invoice(invoice_id: int, data: InvoiceReplace, db: Session = Depends(get_db)):
    """Full edit: header fields plus a complete new item set."""
    return invoice_service.replace_invoice(db, invoice_id, data)


@router.patch("/{invoice_id}", response_model=InvoiceResponse)
def patch_invoice(invoice_id: int, data: InvoicePatch, db: Session = Depends(get_db)):
    """Change status and/or amount_paid. PAID without an amount settles the invoice in full."""
    return invoice_service.apply_status_or_payment(
        db, invoice_id, status=data.status, amount_paid=data.amount_paid,
    )


@router.delete("/{invoice_id}", response_model=dict)
def delete_invoice(invoice_id: int, db: Session = Depends(get_db)):
    invoice_service.delete_invoice(db, invoice_id)
    return {"success": True, "id": invoice_id}
