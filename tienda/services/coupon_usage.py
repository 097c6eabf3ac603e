from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.errors import ConflictError
from ..core.logger import get_logger
from ..models.coupon import Coupon, CouponUsage

log = get_logger("coupons")


def register_coupon_usage(db: Session, coupon: Coupon, user_id: int, order_id: int) -> CouponUsage:
    """
    Registra la redención dentro de la transacción del caller (no hace commit).

    El +1 a used_count es condicional al tope de usos: si otra orden se llevó
    el último uso entre la validación y este punto, no se actualiza ninguna
    fila y la orden completa se revierte. Para cupones exclusivos el UNIQUE
    (coupon_id, exclusive_user_id) cubre la carrera del mismo usuario.
    """
    # Un flush fallido expira la sesión: después del error no se lee el ORM
    coupon_id, code = coupon.id, coupon.code
    exclusive = bool(coupon.one_per_user) or bool(coupon.restricted_to_email)

    res = db.execute(
        update(Coupon)
        .where(
            Coupon.id == coupon_id,
            Coupon.is_active.is_(True),
            or_(Coupon.max_uses.is_(None), Coupon.used_count < Coupon.max_uses),
        )
        .values(used_count=Coupon.used_count + 1)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        log.warning("Cupón %s sin usos disponibles al confirmar orden %s", code, order_id)
        raise ConflictError("El cupón se agotó mientras se procesaba tu compra, intenta de nuevo", "COUPON_RACE_LOST")

    usage = CouponUsage(
        coupon_id=coupon_id,
        user_id=user_id,
        order_id=order_id,
        exclusive_user_id=user_id if exclusive else None,
    )
    db.add(usage)
    try:
        db.flush()
    except IntegrityError:
        log.warning("Cupón %s ya redimido por usuario %s", code, user_id)
        raise ConflictError("Ya has usado este cupón anteriormente", "COUPON_ALREADY_USED")
    log.info("Cupón %s redimido en orden %s por usuario %s", code, order_id, user_id)
    return usage
