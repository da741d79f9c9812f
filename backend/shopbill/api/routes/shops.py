from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from shopbill.api.deps import get_db
from shopbill.schemas.shop import ShopCreate, ShopResponse, ShopUpdate
from shopbill.services import records

router = APIRouter()


@router.post("", response_model=ShopResponse, status_code=status.HTTP_201_CREATED)
def create_shop(data: ShopCreate, db: Session = Depends(get_db)):
    return records.create_shop(db, data)


@router.get("/{shop_id}", response_model=ShopResponse)
def get_shop(shop_id: int, db: Session = Depends(get_db)):
    return records.get_shop(db, shop_id)


@router.patch("/{shop_id}", response_model=ShopResponse)
def update_shop(shop_id: int, data: ShopUpdate, db: Session = Depends(get_db)):
    return records.update_shop(db, shop_id, data)
