from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from housepoints.api.deps import require_admin
from housepoints.core.security import hash_password
from housepoints.db.session import get_db
from housepoints.models.user import User
from housepoints.schemas.users import UserCreateRequest, UserOut

router = APIRouter(prefix="/users", tags=["users"], dependencies=[Depends(require_admin)])


@router.get("", response_model=list[UserOut])
def list_users(db: Session = Depends(get_db)):
    rows = db.scalars(select(User).order_by(User.role, User.last_name, User.login)).all()
    return rows


@router.post("", response_model=UserOut, status_code=201)
def create_user(payload: UserCreateRequest, db: Session = Depends(get_db)):
    if db.scalar(select(User).where(User.login == payload.login)):
        raise HTTPException(status_code=409, detail="Login already taken")

    user = User(
        login=payload.login,
        password_hash=hash_password(payload.password),
        first_name=payload.first_name,
        last_name=payload.last_name,
        role=payload.role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user
