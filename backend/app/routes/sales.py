from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, condecimal
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.deps import get_current_user, get_policy
from app.core.policy import AuthorizationPolicy
from app.core.serialization_helpers import serialize_datetime, serialize_decimal
from app.models.sale import Sale
from app.models.shift import Shift
from app.models.user import User
from app.services import sale_service, shift_service


router = APIRouter()


class SaleItemIn(BaseModel):
    product_id: int
    quantity: int = 1
    price: Optional[condecimal(max_digits=10, decimal_places=2)] = None


class PaymentIn(BaseModel):
    method: str
    amount: condecimal(max_digits=10, decimal_places=2)


class SaleCreate(BaseModel):
    shift_id: int
    items: List[SaleItemIn]
    payments: List[PaymentIn] = []
    customer_name: Optional[str] = None
    customer_lot: Optional[str] = None
    discount: condecimal(max_digits=10, decimal_places=2) = 0


def serialize_sale(sale: Sale) -> dict:
    return {
        "id": sale.id,
        "sale_number": sale.sale_number,
        "user_id": sale.user_id,
        "user_name": sale.user_name,
        "shift_id": sale.shift_id,
        "subtotal": serialize_decimal(sale.subtotal),
        "discount": serialize_decimal(sale.discount),
        "total": serialize_decimal(sale.total),
        "payment_method": sale.payment_method,
        "customer_name": sale.customer_name,
        "customer_lot": sale.customer_lot,
        "created_at": serialize_datetime(sale.created_at),
        "items": [
            {
                "product_id": item.product_id,
                "product_name": item.product_name,
                "quantity": item.quantity,
                "price": serialize_decimal(item.price),
                "subtotal": serialize_decimal(item.subtotal),
            }
            for item in sale.items
        ],
        "payments": [
            {"method": p.method, "amount": serialize_decimal(p.amount)}
            for p in sale.payments
        ],
    }


@router.post("/")
def create_sale(
    data: SaleCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    policy: AuthorizationPolicy = Depends(get_policy),
):
    shift = db.query(Shift).filter(Shift.id == data.shift_id).first()
    if shift:
        shift_service.ensure_shift_access(shift, user, policy)
    result = sale_service.complete_sale(
        db,
        shift,
        items=[item.model_dump() for item in data.items],
        payments=[p.model_dump() for p in data.payments],
        customer_name=data.customer_name,
        customer_lot=data.customer_lot,
        discount=data.discount,
    )
    response = serialize_sale(result.sale)
    response["payments_defaulted"] = result.payments_defaulted
    response["warnings"] = [
        {"step": w.step, "message": w.message, "detail": w.detail} for w in result.warnings
    ]
    return response


@router.get("/")
def list_sales(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    policy: AuthorizationPolicy = Depends(get_policy),
    shift_id: Optional[int] = Query(None),
    period: str = Query("today"),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
):
    if shift_id is not None:
        shift_service.ensure_shift_access(shift_service.get_shift(db, shift_id), user, policy)
    operator_id = None if policy.is_allowed(user, "view_all_shifts") else user.id
    sales = sale_service.list_sales(
        db, shift_id=shift_id, operator_id=operator_id, period=period, start=start, end=end
    )
    return [serialize_sale(s) for s in sales]


@router.get("/{sale_id}")
def get_sale(
    sale_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    policy: AuthorizationPolicy = Depends(get_policy),
):
    sale = sale_service.get_sale(db, sale_id)
    shift_service.ensure_shift_access(shift_service.get_shift(db, sale.shift_id), user, policy)
    return serialize_sale(sale)
