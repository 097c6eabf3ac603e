from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.errors import NotFoundError, ValidationError
from ..core.logger import get_logger
from ..models.order import CANCELADO, ENTREGADO, ENVIADO, PAGADO, PENDIENTE, Order

log = get_logger("orders")

# Transiciones permitidas (las dispara un admin, salvo el estado inicial)
TRANSITIONS = {
    PENDIENTE: {PAGADO, CANCELADO},
    PAGADO: {ENVIADO, CANCELADO},
    ENVIADO: {ENTREGADO},
    ENTREGADO: set(),
    CANCELADO: set(),
}

PAYMENT_METHODS = {
    "card": "Tarjeta de crédito/débito",
    "transfer": "Transferencia bancaria",
    "oxxo": "Pago en OXXO",
}


def initial_status(payment_method: str) -> str:
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"Método de pago no soportado: {payment_method}", "PAYMENT_METHOD_INVALID")
    return PAGADO if payment_method == "card" else PENDIENTE


def payment_method_name(method: str) -> str:
    return PAYMENT_METHODS.get(method, method)


def serialize_order(o: Order) -> dict:
    return {
        "order_id": o.id,
        "user_id": o.user_id,
        "status": o.status,
        "subtotal": float(o.subtotal or 0),
        "tax_amount": float(o.tax_amount or 0),
        "tax_name": o.tax_name,
        "shipping_cost": float(o.shipping_cost or 0),
        "shipping_type": o.shipping_type,
        "discount": float(o.discount or 0),
        "coupon_code": o.coupon_code,
        "gift_wrap": bool(o.gift_wrap),
        "gift_wrap_cost": float(o.gift_wrap_cost or 0),
        "total": float(o.total or 0),
        "currency_code": o.currency_code,
        "currency_symbol": o.currency_symbol,
        "shipping": {
            "name": o.shipping_name,
            "address": o.shipping_address,
            "city": o.shipping_city,
            "postal_code": o.shipping_postal_code,
            "phone": o.shipping_phone,
            "country": o.shipping_country,
        },
        "payment_method": o.payment_method,
        "notes": o.notes,
        "invoice_path": o.invoice_path,
        "created_at": o.created_at.isoformat() if o.created_at else None,
        "lines": [
            {
                "product_id": l.product_id,
                "name": l.name,
                "unit_price": float(l.unit_price),
                "quantity": l.quantity,
                "line_total": float(l.line_total),
            }
            for l in o.lines
        ],
    }


def list_orders(db: Session, user_id: Optional[int] = None) -> List[Order]:
    q = db.query(Order)
    if user_id is not None:
        q = q.filter(Order.user_id == user_id)
    return q.order_by(Order.id.desc()).all()


def get_order(db: Session, order_id: int) -> Order:
    o = db.get(Order, order_id)
    if o is None:
        raise NotFoundError("Pedido no encontrado", "ORDER_NOT_FOUND")
    return o


def update_order_status(db: Session, order_id: int, status: str) -> Order:
    o = get_order(db, order_id)
    status = (status or "").strip().lower()
    if status not in TRANSITIONS:
        raise ValidationError(f"Estado desconocido: {status}", "ORDER_STATUS_UNKNOWN")
    if status not in TRANSITIONS[o.status]:
        raise ValidationError(f"No se puede pasar de {o.status} a {status}", "ORDER_STATUS_TRANSITION")
    prev = o.status
    o.status = status
    db.commit()
    db.refresh(o)
    log.info("Orden %s: %s -> %s", o.id, prev, status)
    return o


def delete_order(db: Session, order_id: int) -> None:
    o = get_order(db, order_id)
    db.delete(o)
    db.commit()
    log.info("Orden %s eliminada", order_id)
