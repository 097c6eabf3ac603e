import json
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.schemas import OrderStatusIn, ProcessOrderRequest
from ..db import get_db
from ..models.user import User
from ..services import orders as order_service
from ..services.checkout import process_order
from ..services.notifications import Notifier, get_notifier
from .deps import require_user

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("")
def create_order(
    body: ProcessOrderRequest,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    totals = body.totals.model_dump()
    if totals.get("payment_details") is not None:
        totals["payment_details"] = json.dumps(totals["payment_details"])
    result = process_order(
        db,
        user.id,
        [it.model_dump() for it in body.items],
        body.payment_method,
        shipping_info=body.shipping.model_dump(),
        precomputed_totals=totals,
        notifier=notifier,
    )
    result["message"] = "¡Compra finalizada! La nota se envió a tu correo electrónico"
    return result


@router.get("")
def list_orders(user_id: Optional[int] = None, db: Session = Depends(get_db)):
    return {"orders": [order_service.serialize_order(o) for o in order_service.list_orders(db, user_id)]}


@router.get("/{order_id}")
def get_order(order_id: int, db: Session = Depends(get_db)):
    return order_service.serialize_order(order_service.get_order(db, order_id))


@router.patch("/{order_id}/status")
def update_status(order_id: int, body: OrderStatusIn, db: Session = Depends(get_db)):
    o = order_service.update_order_status(db, order_id, body.status)
    return {"order_id": o.id, "status": o.status}


@router.delete("/{order_id}")
def delete_order(order_id: int, db: Session = Depends(get_db)):
    order_service.delete_order(db, order_id)
    return {"deleted": True, "order_id": order_id}
