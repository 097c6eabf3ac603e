from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.errors import IntegrityConflictError, NotFoundError, ValidationError
from ..core.logger import get_logger
from ..models.product import Product, Sale
from ..utils.money import money

log = get_logger("catalog")


def serialize_product(p: Product) -> dict:
    return {
        "id": p.id,
        "name": p.name,
        "description": p.description,
        "category": p.category,
        "price": float(p.price or 0),
        "stock": int(p.stock or 0),
        "image": p.image,
        "is_featured": bool(p.is_featured),
    }


def get_product(db: Session, product_id: int) -> Optional[Product]:
    return db.get(Product, product_id)


def list_products(db: Session, category: Optional[str] = None) -> List[Product]:
    q = db.query(Product)
    if category:
        q = q.filter(Product.category == category)
    return q.order_by(Product.id).all()


def create_product(db: Session, data: dict) -> Product:
    if not (data.get("name") or "").strip():
        raise ValidationError("Nombre de producto requerido", "PRODUCT_NAME_REQUIRED")
    if data.get("price") is None or money(data["price"]) < 0:
        raise ValidationError("Precio inválido", "PRODUCT_PRICE_INVALID")
    if int(data.get("stock") or 0) < 0:
        raise ValidationError("El stock no puede ser negativo", "PRODUCT_STOCK_INVALID")
    p = Product(
        name=data["name"].strip(),
        description=data.get("description"),
        category=data.get("category"),
        price=money(data["price"]),
        stock=int(data.get("stock") or 0),
        image=data.get("image"),
        is_featured=bool(data.get("is_featured")),
    )
    db.add(p)
    db.commit()
    db.refresh(p)
    return p


def decrement_stock(db: Session, product_id: int, quantity: int) -> bool:
    """UPDATE condicional; False si el stock ya no alcanza (no hace commit)."""
    res = db.execute(
        update(Product)
        .where(Product.id == product_id, Product.stock >= quantity)
        .values(stock=Product.stock - quantity)
        .execution_options(synchronize_session=False)
    )
    return res.rowcount == 1


def register_sale(db: Session, product_id: int, quantity: int, user_id: Optional[int] = None) -> Sale:
    sale = Sale(product_id=product_id, quantity=quantity, user_id=user_id)
    db.add(sale)
    return sale


def delete_product(db: Session, product_id: int) -> None:
    p = db.get(Product, product_id)
    if p is None:
        raise NotFoundError("Producto no encontrado", "PRODUCT_NOT_FOUND")
    db.delete(p)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        log.info("Producto %s con ventas, no se borra", product_id)
        raise IntegrityConflictError(
            "Este producto tiene ventas asociadas y no puede ser eliminado para mantener el historial de ventas.",
            "TIENE_VENTAS",
        )
