from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from ..db import Base


class Product(Base):
    __tablename__ = "product"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(120), nullable=False)
    description = Column(String)
    category = Column(String(60), index=True)
    price = Column(Numeric(12, 2), nullable=False)  # MXN
    stock = Column(Integer, nullable=False, default=0)
    image = Column(String(255))
    is_featured = Column(Boolean, default=False)

    # Sin cascade: una venta registrada impide borrar el producto
    sales = relationship("Sale", back_populates="product", passive_deletes="all")


class Sale(Base):
    __tablename__ = "sale"
    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("product.id", ondelete="RESTRICT"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("user.id"))
    quantity = Column(Integer, nullable=False)
    date = Column(DateTime, default=datetime.utcnow)

    product = relationship("Product", back_populates="sales")
