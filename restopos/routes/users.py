from fastapi import APIRouter, Depends
from typing import List
from sqlalchemy.orm import Session

from restopos.db.session import get_db
from restopos.models.user import User as UserModel
from restopos.schemas.user import UserCreate, UserRead, UserUpdate
from restopos.services import users as user_service

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("", response_model=List[UserRead])
@router.get("/", response_model=List[UserRead])
def list_users(db: Session = Depends(get_db)):
    return db.query(UserModel).order_by(UserModel.created_at.desc(), UserModel.id.desc()).limit(200).all()


@router.post("", response_model=UserRead, status_code=201)
@router.post("/", response_model=UserRead, status_code=201)
def create_user(payload: UserCreate, db: Session = Depends(get_db)):
    return user_service.create_user(db, payload.name, payload.email, payload.password, payload.role)


@router.get("/{user_id}", response_model=UserRead)
def get_user(user_id: int, db: Session = Depends(get_db)):
    return user_service.get_user(db, user_id)


@router.put("/{user_id}", response_model=UserRead)
def update_user(user_id: int, payload: UserUpdate, db: Session = Depends(get_db)):
    return user_service.update_user(db, user_id, payload.name, payload.email, payload.role, payload.password)


@router.delete("/{user_id}")
def delete_user(user_id: int, db: Session = Depends(get_db)):
    user_service.delete_user(db, user_id)
    return {"detail": "User deleted"}
