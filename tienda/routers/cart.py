from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.schemas import CartItemIn, CartQtyIn
from ..db import get_db
from ..models.user import User
from ..services import cart as cart_service
from .deps import require_user

router = APIRouter(prefix="/cart", tags=["cart"])


@router.get("")
def get_cart(user: User = Depends(require_user), db: Session = Depends(get_db)):
    return cart_service.serialize_cart(cart_service.get_cart(db, user.id))


@router.post("/items")
def add_item(body: CartItemIn, user: User = Depends(require_user), db: Session = Depends(get_db)):
    return cart_service.add_item(db, user.id, body.product_id, body.quantity)


@router.put("/items/{product_id}")
def update_item(
    product_id: int, body: CartQtyIn, user: User = Depends(require_user), db: Session = Depends(get_db)
):
    return {"updated": cart_service.update_item_quantity(db, user.id, product_id, body.quantity)}


@router.delete("/items/{product_id}")
def remove_item(product_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    return {"removed": cart_service.remove_item(db, user.id, product_id)}


@router.delete("")
def clear(user: User = Depends(require_user), db: Session = Depends(get_db)):
    n = cart_service.clear_cart(db, user.id)
    db.commit()
    return {"removed": n}


@router.get("/count")
def count(user: User = Depends(require_user), db: Session = Depends(get_db)):
    return {"count": cart_service.item_count(db, user.id)}
