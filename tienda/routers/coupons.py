from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.schemas import CouponCreate
from ..db import get_db
from ..models.coupon import Coupon
from ..services import coupons as coupon_service

router = APIRouter(prefix="/coupons", tags=["coupons"])


def _serialize(c: Coupon) -> dict:
    return {
        "id": c.id,
        "code": c.code,
        "name": c.name,
        "description": c.description,
        "discount_type": c.discount_type,
        "discount_value": float(c.discount_value or 0),
        "min_purchase": float(c.min_purchase) if c.min_purchase is not None else None,
        "max_discount": float(c.max_discount) if c.max_discount is not None else None,
        "max_uses": c.max_uses,
        "used_count": int(c.used_count or 0),
        "one_per_user": bool(c.one_per_user),
        "restricted_to_email": c.restricted_to_email,
        "expires_at": c.expires_at.isoformat() if c.expires_at else None,
        "is_active": bool(c.is_active),
    }


@router.get("")
def active_coupons(db: Session = Depends(get_db)):
    return {"coupons": [_serialize(c) for c in coupon_service.list_active_coupons(db)]}


@router.post("")
def create_coupon(body: CouponCreate, db: Session = Depends(get_db)):
    return _serialize(coupon_service.create_coupon(db, body.model_dump()))


@router.post("/{coupon_id}/deactivate")
def deactivate_coupon(coupon_id: int, db: Session = Depends(get_db)):
    return _serialize(coupon_service.deactivate_coupon(db, coupon_id))
