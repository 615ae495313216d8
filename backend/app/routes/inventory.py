from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.deps import get_current_user, get_policy
from app.core.policy import AuthorizationPolicy
from app.core.serialization_helpers import serialize_datetime
from app.models.inventory_movement import InventoryMovement
from app.models.user import User
from app.services import inventory_service


router = APIRouter()


class ReceiveStockIn(BaseModel):
    product_id: int
    quantity: int
    supplier: str = ""
    reference: str = ""
    notes: str = ""
    shift_id: Optional[int] = None
    supervisor_passphrase: Optional[str] = None


def serialize_movement(movement: InventoryMovement) -> dict:
    return {
        "id": movement.id,
        "product_id": movement.product_id,
        "product_code": movement.product_code,
        "product_name": movement.product_name,
        "category": movement.category,
        "movement_type": movement.movement_type,
        "quantity": movement.quantity,
        "previous_stock": movement.previous_stock,
        "new_stock": movement.new_stock,
        "supplier": movement.supplier,
        "reference": movement.reference,
        "user_name": movement.user_name,
        "shift_id": movement.shift_id,
        "notes": movement.notes,
        "created_at": serialize_datetime(movement.created_at),
    }


@router.post("/receive")
def receive_stock(
    data: ReceiveStockIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    policy: AuthorizationPolicy = Depends(get_policy),
):
    movement = inventory_service.receive_stock(
        db,
        policy,
        user,
        product_id=data.product_id,
        quantity=data.quantity,
        supplier=data.supplier,
        reference=data.reference,
        notes=data.notes,
        shift_id=data.shift_id,
        supervisor_passphrase=data.supervisor_passphrase,
    )
    return serialize_movement(movement)


@router.get("/movements")
def list_movements(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    movement_type: Optional[str] = Query(None, description="sale o purchase"),
    product: Optional[str] = Query(None, description="Nombre o código"),
    supplier: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    period: str = Query("today"),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
):
    movements = inventory_service.list_movements(
        db,
        movement_type=movement_type,
        product=product,
        supplier=supplier,
        category=category,
        period=period,
        start=start,
        end=end,
    )
    return [serialize_movement(m) for m in movements]
