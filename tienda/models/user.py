from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String

from ..db import Base


class User(Base):
    __tablename__ = "user"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(120), nullable=False)
    email = Column(String(120), unique=True, index=True, nullable=False)
    phone = Column(String(40), nullable=True)
    role = Column(String(20), default="customer")  # customer | admin
    created_at = Column(DateTime, default=datetime.utcnow)
