"""Products: catalogue CRUD. Invoice items snapshot product data at creation."""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from shopbill.api.deps import get_db
from shopbill.core.config import settings
from shopbill.schemas.product import ProductCreate, ProductResponse, ProductUpdate
from shopbill.services import records

router = APIRouter()


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
def create_product(data: ProductCreate, db: Session = Depends(get_db)):
    return records.create_product(db, data)


@router.get("", response_model=List[ProductResponse])
def list_products(
    business_id: Optional[int] = Query(None, alias="businessId"),
    search: Optional[str] = Query(None),
    limit: int = Query(settings.LIST_LIMIT_DEFAULT),
    offset: int = Query(0),
    db: Session = Depends(get_db),
):
    return records.list_products(db, business_id=business_id, search=search, limit=limit, offset=offset)


@router.get("/{product_id}", response_model=ProductResponse)
def get_product(product_id: int, db: Session = Depends(get_db)):
    return records.get_product(db, product_id)


@router.patch("/{product_id}", response_model=ProductResponse)
def update_product(product_id: int, data: ProductUpdate, db: Session = Depends(get_db)):
    return records.update_product(db, product_id, data)


@router.delete("/{product_id}", response_model=dict)
def delete_product(product_id: int, db: Session = Depends(get_db)):
    records.delete_product(db, product_id)
    return {"success": True, "id": product_id}
