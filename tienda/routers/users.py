from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..core.errors import NotFoundError
from ..db import get_db
from ..services.users import create_user, find_user

router = APIRouter(prefix="/users", tags=["users"])


class UserIn(BaseModel):
    name: str
    email: str
    phone: Optional[str] = None


def _serialize(u) -> dict:
    return {"id": u.id, "name": u.name, "email": u.email, "phone": u.phone}


@router.post("")
def register(body: UserIn, db: Session = Depends(get_db)):
    return _serialize(create_user(db, body.name, body.email, body.phone))


@router.get("/{user_id}")
def get_user(user_id: int, db: Session = Depends(get_db)):
    u = find_user(db, user_id)
    if u is None:
        raise NotFoundError("Usuario no encontrado", "USER_NOT_FOUND")
    return _serialize(u)
