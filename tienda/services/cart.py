from typing import List

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..core.errors import NotFoundError, ValidationError
from ..models.cart import CartItem
from ..models.product import Product
from ..utils.money import ZERO, money


def get_cart(db: Session, user_id: int) -> List[CartItem]:
    return db.query(CartItem).filter(CartItem.user_id == user_id).order_by(CartItem.id).all()


def serialize_cart(items: List[CartItem]) -> dict:
    subtotal = money(sum((money(it.product.price) * it.quantity for it in items), ZERO))
    lines = [
        {
            "product_id": it.product_id,
            "name": it.product.name,
            "price": float(it.product.price or 0),
            "quantity": it.quantity,
            "stock": int(it.product.stock or 0),
            "image": it.product.image,
        }
        for it in items
    ]
    return {
        "items": lines,
        "count": sum(l["quantity"] for l in lines),
        "subtotal": float(subtotal),
    }


def add_item(db: Session, user_id: int, product_id: int, quantity: int = 1) -> dict:
    if quantity <= 0:
        raise ValidationError("La cantidad debe ser mayor a 0", "CART_QTY_INVALID")
    if db.get(Product, product_id) is None:
        raise NotFoundError("Producto no encontrado", "PRODUCT_NOT_FOUND")
    item = db.query(CartItem).filter_by(user_id=user_id, product_id=product_id).first()
    if item:
        item.quantity += quantity
        action = "updated"
    else:
        item = CartItem(user_id=user_id, product_id=product_id, quantity=quantity)
        db.add(item)
        action = "added"
    db.commit()
    return {"action": action, "quantity": item.quantity}


def remove_item(db: Session, user_id: int, product_id: int) -> int:
    n = db.query(CartItem).filter_by(user_id=user_id, product_id=product_id).delete()
    db.commit()
    return n


def update_item_quantity(db: Session, user_id: int, product_id: int, quantity: int) -> int:
    if quantity <= 0:
        return remove_item(db, user_id, product_id)
    n = db.query(CartItem).filter_by(user_id=user_id, product_id=product_id).update({"quantity": quantity})
    db.commit()
    return n


def clear_cart(db: Session, user_id: int) -> int:
    """Vacía el carrito; sin commit para que el checkout lo incluya en su transacción."""
    return db.query(CartItem).filter(CartItem.user_id == user_id).delete(synchronize_session=False)


def item_count(db: Session, user_id: int) -> int:
    total = db.query(func.sum(CartItem.quantity)).filter(CartItem.user_id == user_id).scalar()
    return int(total or 0)
