from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.deps import get_current_user, require_action
from app.models.user import User
from app.services.configuration_service import get_configuration, update_configuration


router = APIRouter()


class ConfigurationIn(BaseModel):
    business_name: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    tax_id: Optional[str] = None
    currency: Optional[str] = None
    receipt_message: Optional[str] = None


class ConfigurationOut(BaseModel):
    business_name: str
    address: str
    phone: str
    tax_id: str
    currency: str
    receipt_message: str

    class Config:
        from_attributes = True


@router.get("/", response_model=ConfigurationOut)
def read_configuration(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return get_configuration(db)


@router.put("/", response_model=ConfigurationOut)
def write_configuration(
    data: ConfigurationIn,
    db: Session = Depends(get_db),
    user: User = Depends(require_action("manage_configuration")),
):
    return update_configuration(db, data.model_dump(exclude_unset=True))
