"""Customers: CRUD with search and pagination."""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from shopbill.api.deps import get_db
from shopbill.core.config import settings
from shopbill.schemas.customer import CustomerCreate, CustomerListResponse, CustomerResponse, CustomerUpdate
from shopbill.services import records

router = APIRouter()


@router.post("", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
def create_customer(data: CustomerCreate, db: Session = Depends(get_db)):
    return records.create_customer(db, data)


@router.get("", response_model=CustomerListResponse)
def list_customers(
    business_id: Optional[int] = Query(None, alias="businessId"),
    search: Optional[str] = Query(None),
    limit: int = Query(settings.LIST_LIMIT_DEFAULT),
    offset: int = Query(0),
    db: Session = Depends(get_db),
):
    rows, total = records.list_customers(db, business_id=business_id, search=search, limit=limit, offset=offset)
    return {"data": rows, "total": total}


@router.get("/{customer_id}", response_model=CustomerResponse)
def get_customer(customer_id: int, db: Session = Depends(get_db)):
    return records.get_customer(db, customer_id)


@router.patch("/{customer_id}", response_model=CustomerResponse)
def update_customer(customer_id: int, data: CustomerUpdate, db: Session = Depends(get_db)):
    return records.update_customer(db, customer_id, data)


@router.delete("/{customer_id}", response_model=dict)
def delete_customer(customer_id: int, db: Session = Depends(get_db)):
    records.delete_customer(db, customer_id)
    return {"success": True, "id": customer_id}
