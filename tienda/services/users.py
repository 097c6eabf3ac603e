from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.errors import ValidationError
from ..models.user import User


def find_user(db: Session, user_id: Optional[int]) -> Optional[User]:
    if user_id is None:
        return None
    return db.get(User, user_id)


def create_user(db: Session, name: str, email: str, phone: Optional[str] = None) -> User:
    email = (email or "").strip().lower()
    if not email or not (name or "").strip():
        raise ValidationError("Nombre y email son requeridos", "USER_FIELDS_REQUIRED")
    user = User(name=name.strip(), email=email, phone=phone)
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValidationError("El email ya está registrado", "USER_DUPLICATE")
    db.refresh(user)
    return user
