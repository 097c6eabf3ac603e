from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.errors import NotFoundError, ValidationError
from ..core.logger import get_logger
from ..models.coupon import DISCOUNT_TYPES, FIXED, PERCENTAGE, Coupon, CouponUsage
from ..models.user import User
from ..utils.money import ZERO, BaseMoney, D, money

log = get_logger("coupons")


def utcnow() -> datetime:
    # Naive UTC, igual que las columnas DateTime
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _naive_utc(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None or dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def _norm_email(email: Optional[str]) -> Optional[str]:
    e = (email or "").strip().lower()
    return e or None


@dataclass
class CouponValidation:
    valid: bool
    reason: str
    message: str
    coupon: Optional[Coupon] = None
    discount: BaseMoney = BaseMoney(ZERO)

    def as_api(self):
        out = {
            "valid": self.valid,
            "reason": self.reason,
            "message": self.message,
            "discount": float(self.discount),
            "coupon": None,
        }
        if self.coupon is not None:
            out["coupon"] = {
                "code": self.coupon.code,
                "name": self.coupon.name,
                "discount_type": self.coupon.discount_type,
                "discount_value": float(self.coupon.discount_value or 0),
            }
        return out


def _fail(reason: str, message: str) -> CouponValidation:
    return CouponValidation(valid=False, reason=reason, message=message)


def find_by_code(db: Session, code: Optional[str]) -> Optional[Coupon]:
    code = (code or "").strip().upper()
    if not code:
        return None
    return db.query(Coupon).filter(Coupon.code == code, Coupon.is_active.is_(True)).first()


def _already_used(db: Session, coupon: Coupon, user_id: Optional[int], user_email: Optional[str]) -> Optional[str]:
    """Mensaje de rechazo si ya hay un uso previo; ``None`` si no."""
    if user_id is not None and (coupon.one_per_user or coupon.restricted_to_email):
        used = (
            db.query(CouponUsage.id)
            .filter(CouponUsage.coupon_id == coupon.id, CouponUsage.user_id == user_id)
            .first()
        )
        if used:
            return "Ya has usado este cupón anteriormente"
    if user_email and coupon.restricted_to_email:
        used = (
            db.query(CouponUsage.id)
            .join(User, User.id == CouponUsage.user_id)
            .filter(CouponUsage.coupon_id == coupon.id, func.lower(User.email) == user_email)
            .first()
        )
        if used:
            # El email ya lo usó desde otra cuenta
            return "Este cupón ya fue utilizado"
    return None


def compute_discount(coupon: Coupon, subtotal) -> BaseMoney:
    subtotal = D(subtotal)
    value = D(coupon.discount_value)
    if coupon.discount_type == PERCENTAGE:
        discount = subtotal * value / Decimal("100")
        if coupon.max_discount is not None:
            discount = min(discount, D(coupon.max_discount))
        return BaseMoney(money(discount))
    if coupon.discount_type == FIXED:
        # Sin tope contra el subtotal; lo acota el agregador de totales
        return BaseMoney(money(value))
    # free_shipping: el envío lo anula calculate_totals
    return BaseMoney(ZERO)


def validate_coupon(
    db: Session,
    code: Optional[str],
    subtotal,
    user_id: Optional[int] = None,
    user_email: Optional[str] = None,
    now: Optional[datetime] = None,
) -> CouponValidation:
    """
    Valida un cupón contra un subtotal en MXN. La primera regla que falla
    gana; no registra el uso (eso pasa sólo al confirmar la orden).
    """
    coupon = find_by_code(db, code)
    if coupon is None:
        return _fail("not_found", "Cupón no encontrado o inactivo")

    email = _norm_email(user_email)
    restricted = _norm_email(coupon.restricted_to_email)
    if restricted and restricted != email:
        return _fail("email_restricted", "Este cupón solo puede ser usado por el email al que fue enviado")

    now = _naive_utc(now) or utcnow()
    if coupon.expires_at is not None and coupon.expires_at < now:
        return _fail("expired", "Este cupón ha expirado")

    subtotal = D(subtotal)
    if coupon.min_purchase is not None and subtotal < D(coupon.min_purchase):
        return _fail(
            "min_purchase_not_met",
            f"Compra mínima de ${money(coupon.min_purchase)} requerida para este cupón",
        )

    if coupon.max_uses is not None and (coupon.used_count or 0) >= coupon.max_uses:
        return _fail("usage_limit_reached", "Este cupón ha alcanzado su límite de usos")

    used_message = _already_used(db, coupon, user_id, email)
    if used_message:
        return _fail("already_used", used_message)

    return CouponValidation(
        valid=True,
        reason="OK",
        message=f'Cupón "{coupon.name}" aplicado correctamente',
        coupon=coupon,
        discount=compute_discount(coupon, subtotal),
    )


def create_coupon(db: Session, data: dict) -> Coupon:
    code = (data.get("code") or "").strip().upper()
    if not code:
        raise ValidationError("Código de cupón requerido", "COUPON_CODE_REQUIRED")
    dtype = data.get("discount_type")
    if dtype not in DISCOUNT_TYPES:
        raise ValidationError(f"Tipo de descuento inválido: {dtype}", "COUPON_TYPE_UNKNOWN")
    value = money(data.get("discount_value") or 0)
    if dtype != "free_shipping" and value <= 0:
        raise ValidationError("El valor del descuento debe ser mayor a 0", "COUPON_VALUE_INVALID")
    if dtype == PERCENTAGE and value > 100:
        raise ValidationError("Un porcentaje no puede pasar de 100", "COUPON_VALUE_INVALID")

    coupon = Coupon(
        code=code,
        name=data.get("name") or code,
        description=data.get("description"),
        discount_type=dtype,
        discount_value=value,
        min_purchase=data.get("min_purchase"),
        max_discount=data.get("max_discount"),
        max_uses=data.get("max_uses"),
        used_count=0,
        one_per_user=bool(data.get("one_per_user")),
        restricted_to_email=_norm_email(data.get("restricted_to_email")),
        expires_at=_naive_utc(data.get("expires_at")),
        is_active=True,
    )
    db.add(coupon)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValidationError(f"Ya existe un cupón con el código {code}", "COUPON_DUPLICATE")
    db.refresh(coupon)
    log.info("Cupón %s creado (%s %s)", code, dtype, value)
    return coupon


def deactivate_coupon(db: Session, coupon_id: int) -> Coupon:
    coupon = db.get(Coupon, coupon_id)
    if coupon is None:
        raise NotFoundError("Cupón no encontrado", "COUPON_NOT_FOUND")
    coupon.is_active = False
    db.commit()
    db.refresh(coupon)
    log.info("Cupón %s desactivado", coupon.code)
    return coupon


def list_active_coupons(db: Session, now: Optional[datetime] = None) -> List[Coupon]:
    now = _naive_utc(now) or utcnow()
    return (
        db.query(Coupon)
        .filter(Coupon.is_active.is_(True), or_(Coupon.expires_at.is_(None), Coupon.expires_at > now))
        .order_by(Coupon.id)
        .all()
    )
