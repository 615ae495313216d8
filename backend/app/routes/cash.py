from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, condecimal
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.deps import get_current_user, get_policy
from app.core.policy import AuthorizationPolicy
from app.core.serialization_helpers import serialize_datetime, serialize_decimal
from app.models.cash_transaction import CashTransaction
from app.models.user import User
from app.services import shift_service
from app.services.cash_ledger_service import TransactionFilter, list_transactions, record_transaction


router = APIRouter()


class CashTransactionIn(BaseModel):
    shift_id: int
    type: str
    category: str = ""
    amount: condecimal(max_digits=10, decimal_places=2)
    payment_method: str
    description: str = ""


def serialize_transaction(tx: CashTransaction) -> dict:
    return {
        "id": tx.id,
        "shift_id": tx.shift_id,
        "type": tx.type,
        "category": tx.category,
        "amount": serialize_decimal(tx.amount),
        "payment_method": tx.payment_method,
        "description": tx.description,
        "created_at": serialize_datetime(tx.created_at),
    }


@router.post("/transactions")
def create_transaction(
    data: CashTransactionIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    policy: AuthorizationPolicy = Depends(get_policy),
):
    shift_service.ensure_shift_access(shift_service.get_shift(db, data.shift_id), user, policy)
    tx = record_transaction(
        db,
        shift_id=data.shift_id,
        type=data.type,
        category=data.category,
        amount=data.amount,
        payment_method=data.payment_method,
        description=data.description,
    )
    return serialize_transaction(tx)


@router.get("/transactions")
def get_transactions(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    policy: AuthorizationPolicy = Depends(get_policy),
    shift_id: Optional[int] = Query(None),
    type: Optional[str] = Query(None),
    payment_method: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    period: str = Query("today", description="today, week, month, all o custom"),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
):
    if shift_id is not None:
        shift_service.ensure_shift_access(shift_service.get_shift(db, shift_id), user, policy)
    # Sin permiso global solo se listan los movimientos de turnos propios
    operator_id = None if policy.is_allowed(user, "view_all_shifts") else user.id
    filters = TransactionFilter(
        shift_id=shift_id,
        operator_id=operator_id,
        type=type,
        payment_method=payment_method,
        category=category,
        period=period,
        start=start,
        end=end,
    )
    return [serialize_transaction(tx) for tx in list_transactions(db, filters)]
