from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from ..core.errors import ValidationError
from ..db import get_db
from ..models.user import User
from ..services.users import find_user


def optional_user(
    x_user_id: Optional[int] = Header(default=None, alias="X-User-Id"),
    db: Session = Depends(get_db),
) -> Optional[User]:
    # Sin autenticación propia: el gateway resuelve la sesión y manda el id
    return find_user(db, x_user_id)


def require_user(user: Optional[User] = Depends(optional_user)) -> User:
    if user is None:
        raise ValidationError("Usuario no encontrado", "USER_REQUIRED")
    return user
