from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.errors import ValidationError
from ..core.schemas import CouponValidateRequest, TotalsRequest
from ..db import get_db
from ..models.user import User
from ..services.countries import find_country, get_countries
from ..services.coupons import validate_coupon
from ..services.currency import get_currency_info
from ..services.pricing import quote_totals
from .deps import optional_user

router = APIRouter(prefix="/checkout", tags=["checkout"])


def _country_or_400(code: str):
    config = find_country(code)
    if config is None:
        raise ValidationError("País no encontrado", "COUNTRY_NOT_FOUND")
    return config


@router.get("/countries")
def list_countries():
    return {"countries": get_countries()}


@router.get("/countries/{code}")
def country_config(code: str):
    return {"country": _country_or_400(code).as_api()}


@router.get("/currency/{code}")
def currency_info(code: str):
    _country_or_400(code)
    return get_currency_info(code)


@router.post("/coupon/validate")
def coupon_validate(
    body: CouponValidateRequest,
    user: Optional[User] = Depends(optional_user),
    db: Session = Depends(get_db),
):
    result = validate_coupon(
        db,
        body.code,
        body.subtotal,
        user_id=user.id if user else None,
        user_email=user.email if user else None,
    )
    if not result.valid:
        raise ValidationError(result.message, f"COUPON_{result.reason.upper()}")
    return result.as_api()


@router.post("/totals")
def totals(
    body: TotalsRequest,
    user: Optional[User] = Depends(optional_user),
    db: Session = Depends(get_db),
):
    _country_or_400(body.country_code)
    result, validation = quote_totals(
        db,
        body.subtotal,
        body.country_code,
        body.shipping_type,
        coupon_code=body.coupon_code,
        gift_wrap=body.gift_wrap,
        user_id=user.id if user else None,
        user_email=user.email if user else None,
    )
    out = result.as_api()
    out["coupon"] = validation.as_api() if validation else None
    return out
