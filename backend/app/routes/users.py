from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.deps import require_action
from app.models.user import User
from app.routes.auth import UserOut
from app.services import user_service


router = APIRouter()


class UserCreate(BaseModel):
    username: str
    password: str
    full_name: str = ""
    role: str = "vendedor"


class UserUpdate(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None
    full_name: Optional[str] = None
    role: Optional[str] = None
    active: Optional[bool] = None


@router.get("/", response_model=List[UserOut])
def list_users(
    db: Session = Depends(get_db),
    user: User = Depends(require_action("manage_users")),
    active: Optional[bool] = Query(None),
):
    return user_service.list_users(db, active=active)


@router.post("/", response_model=UserOut)
def create_user(
    data: UserCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_action("manage_users")),
):
    return user_service.create_user(
        db, username=data.username, password=data.password, full_name=data.full_name, role=data.role
    )


@router.put("/{user_id}", response_model=UserOut)
def update_user(
    user_id: int,
    data: UserUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_action("manage_users")),
):
    return user_service.update_user(db, user_id, data.model_dump(exclude_unset=True), current_user=user)


@router.delete("/{user_id}", response_model=UserOut)
def deactivate_user(
    user_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_action("manage_users")),
):
    return user_service.deactivate_user(db, user_id, current_user=user)
