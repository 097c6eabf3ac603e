from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)

from ..db import Base

PERCENTAGE = "percentage"
FIXED = "fixed"
FREE_SHIPPING = "free_shipping"
DISCOUNT_TYPES = (PERCENTAGE, FIXED, FREE_SHIPPING)


class Coupon(Base):
    __tablename__ = "coupon"
    id = Column(Integer, primary_key=True)
    code = Column(String(40), unique=True, index=True, nullable=False)  # siempre en mayúsculas
    name = Column(String(120), nullable=False)
    description = Column(String)
    discount_type = Column(String(20), nullable=False)  # percentage | fixed | free_shipping
    discount_value = Column(Numeric(12, 2), nullable=False, default=0)
    min_purchase = Column(Numeric(12, 2))
    max_discount = Column(Numeric(12, 2))
    max_uses = Column(Integer)
    used_count = Column(Integer, nullable=False, default=0)
    one_per_user = Column(Boolean, nullable=False, default=False)
    restricted_to_email = Column(String(120))
    expires_at = Column(DateTime)
    # Baja lógica: nunca se borra para conservar el historial de usos
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class CouponUsage(Base):
    __tablename__ = "coupon_usage"
    id = Column(Integer, primary_key=True)
    coupon_id = Column(Integer, ForeignKey("coupon.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("user.id"), nullable=False, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="SET NULL"))
    # = user_id sólo para cupones exclusivos (one_per_user o por email); NULL no choca en el UNIQUE
    exclusive_user_id = Column(Integer)
    used_at = Column(DateTime, default=datetime.utcnow)
    __table_args__ = (
        UniqueConstraint("coupon_id", "exclusive_user_id", name="uq_coupon_usage_exclusive"),
    )
