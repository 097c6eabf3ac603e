from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.errors import NotFoundError
from ..core.schemas import ProductCreate
from ..db import get_db
from ..services import catalog
from ..services.currency import format_price

router = APIRouter(prefix="/products", tags=["products"])


@router.get("")
def list_products(category: Optional[str] = None, db: Session = Depends(get_db)):
    return {"products": [catalog.serialize_product(p) for p in catalog.list_products(db, category)]}


@router.get("/{product_id}")
def get_product(product_id: int, country: Optional[str] = None, db: Session = Depends(get_db)):
    p = catalog.get_product(db, product_id)
    if p is None:
        raise NotFoundError("Producto no encontrado", "PRODUCT_NOT_FOUND")
    out = catalog.serialize_product(p)
    if country:
        out["display_price"] = format_price(p.price, country)
    return out


@router.post("")
def create_product(body: ProductCreate, db: Session = Depends(get_db)):
    return catalog.serialize_product(catalog.create_product(db, body.model_dump()))


@router.delete("/{product_id}")
def delete_product(product_id: int, db: Session = Depends(get_db)):
    catalog.delete_product(db, product_id)
    return {"deleted": True, "product_id": product_id}
