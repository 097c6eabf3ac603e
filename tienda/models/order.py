from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from ..db import Base

PENDIENTE = "pendiente"
PAGADO = "pagado"
ENVIADO = "enviado"
ENTREGADO = "entregado"
CANCELADO = "cancelado"


class Order(Base):
    __tablename__ = "orders"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("user.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=PENDIENTE, index=True)

    # Importes en MXN al momento de la compra
    subtotal = Column(Numeric(12, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(12, 2), nullable=False, default=0)
    tax_name = Column(String(20))
    shipping_cost = Column(Numeric(12, 2), nullable=False, default=0)
    shipping_type = Column(String(20), default="standard")
    discount = Column(Numeric(12, 2), nullable=False, default=0)
    coupon_code = Column(String(40))
    gift_wrap = Column(Boolean, default=False)
    gift_wrap_cost = Column(Numeric(12, 2), default=0)
    total = Column(Numeric(12, 2), nullable=False, default=0)

    # Moneda de despliegue (nunca se guardan montos convertidos)
    currency_code = Column(String(3), default="MXN")
    currency_symbol = Column(String(4), default="$")

    shipping_name = Column(String(120))
    shipping_address = Column(String(255))
    shipping_city = Column(String(120))
    shipping_postal_code = Column(String(20))
    shipping_phone = Column(String(40))
    shipping_country = Column(String(2), default="MX")

    payment_method = Column(String(20), nullable=False)  # card | transfer | oxxo
    payment_details = Column(String)
    notes = Column(String)
    invoice_path = Column(String(255))
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    lines = relationship(
        "OrderLine", back_populates="order", cascade="all, delete-orphan", lazy="selectin"
    )


class OrderLine(Base):
    __tablename__ = "order_line"
    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    # Copia del producto, no FK: editar el catálogo no altera órdenes históricas
    product_id = Column(Integer, index=True)
    name = Column(String(120), nullable=False)
    image = Column(String(255))
    unit_price = Column(Numeric(12, 2), nullable=False)
    quantity = Column(Integer, nullable=False)
    line_total = Column(Numeric(12, 2), nullable=False)

    order = relationship("Order", back_populates="lines")
