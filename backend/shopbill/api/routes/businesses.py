"""Businesses: create, read, and settings (including invoice numbering)."""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from shopbill.api.deps import get_db
from shopbill.schemas.business import BusinessCreate, BusinessResponse, BusinessUpdate
from shopbill.services import records

router = APIRouter()


@router.post("", response_model=BusinessResponse, status_code=status.HTTP_201_CREATED)
def create_business(data: BusinessCreate, db: Session = Depends(get_db)):
    return records.create_business(db, data)


@router.get("/{business_id}", response_model=BusinessResponse)
def get_business(business_id: int, db: Session = Depends(get_db)):
    return records.get_business(db, business_id)


@router.patch("/{business_id}", response_model=BusinessResponse)
def update_business(business_id: int, data: BusinessUpdate, db: Session = Depends(get_db)):
    """Partial update. Only fields present in the body are changed."""
    return records.update_business_settings(db, business_id, data)
