from decimal import Decimal
from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, condecimal
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.deps import get_current_user, get_policy
from app.core.errors import AuthorizationError
from app.core.policy import AuthorizationPolicy
from app.core.serialization_helpers import serialize_datetime, serialize_decimal
from app.models.shift import Shift
from app.models.user import User
from app.services import shift_service
from app.services.reconciliation_service import CashDifference, Reconciliation, classify_difference


router = APIRouter()
logger = logging.getLogger(__name__)


class ShiftStart(BaseModel):
    operator_id: Optional[int] = None
    operator_name: Optional[str] = None
    opening_cash: condecimal(max_digits=10, decimal_places=2) = 0


class ShiftClose(BaseModel):
    closing_cash: condecimal(max_digits=10, decimal_places=2)


def serialize_shift(shift: Shift) -> dict:
    return {
        "id": shift.id,
        "user_id": shift.user_id,
        "user_name": shift.user_name,
        "start_date": serialize_datetime(shift.start_date),
        "end_date": serialize_datetime(shift.end_date),
        "opening_cash": serialize_decimal(shift.opening_cash),
        "closing_cash": serialize_decimal(shift.closing_cash),
        "total_sales": serialize_decimal(shift.total_sales),
        "total_expenses": serialize_decimal(shift.total_expenses),
        "active": shift.active,
    }


def _by_method(values: dict) -> dict:
    return {method: serialize_decimal(amount) for method, amount in values.items()}


def serialize_reconciliation(rec: Reconciliation) -> dict:
    return {
        "opening_cash": serialize_decimal(rec.opening_cash),
        "income_by_method": _by_method(rec.income_by_method),
        "expense_by_method": _by_method(rec.expense_by_method),
        "balance_by_method": _by_method(rec.balance_by_method),
        "total_income": serialize_decimal(rec.total_income),
        "total_expense": serialize_decimal(rec.total_expense),
        "balance": serialize_decimal(rec.balance),
        "expected_cash": serialize_decimal(rec.expected_cash),
        "expected_cash_mode": rec.expected_cash_mode,
        "transaction_count": rec.transaction_count,
    }


def serialize_difference(diff: CashDifference) -> dict:
    return {
        "expected_cash": serialize_decimal(diff.expected_cash),
        "closing_cash": serialize_decimal(diff.closing_cash),
        "difference": serialize_decimal(diff.difference),
        "status": diff.status,
        "message": diff.message,
    }


@router.post("/start")
def start_shift(
    data: ShiftStart,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    policy: AuthorizationPolicy = Depends(get_policy),
):
    operator_id = data.operator_id or user.id
    if operator_id != user.id:
        if not policy.is_allowed(user, "view_all_shifts"):
            raise AuthorizationError("Solo un administrador puede abrir turnos de otro operador")
        operator = db.query(User).filter(User.id == operator_id, User.active == True).first()  # noqa: E712
        if not operator:
            raise HTTPException(status_code=404, detail="Operador no encontrado")
        default_name = operator.full_name or operator.username
    else:
        default_name = user.full_name or user.username

    shift = shift_service.start_shift(db, operator_id, data.operator_name or default_name, data.opening_cash)
    return serialize_shift(shift)


@router.post("/{shift_id}/close")
def close_shift(
    shift_id: int,
    data: ShiftClose,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    policy: AuthorizationPolicy = Depends(get_policy),
):
    shift_service.ensure_shift_access(shift_service.get_shift(db, shift_id), user, policy)
    closure = shift_service.close_shift(db, shift_id, data.closing_cash)
    return {
        "shift": serialize_shift(closure.shift),
        "reconciliation": serialize_reconciliation(closure.reconciliation),
        **serialize_difference(closure.difference),
    }


@router.get("/active")
def active_shift(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    shift = shift_service.get_active_shift(db, user.id)
    if not shift:
        raise HTTPException(status_code=404, detail="Sin turno activo")
    return serialize_shift(shift)


@router.get("/closures")
def list_closures(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    policy: AuthorizationPolicy = Depends(get_policy),
) -> List[dict]:
    operator_id = None if policy.is_allowed(user, "view_all_shifts") else user.id
    return [
        {
            "shift": serialize_shift(closure.shift),
            "reconciliation": serialize_reconciliation(closure.reconciliation),
            **serialize_difference(closure.difference),
        }
        for closure in shift_service.list_closures(db, operator_id=operator_id)
    ]


@router.get("/")
def list_shifts(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    policy: AuthorizationPolicy = Depends(get_policy),
    active: Optional[bool] = Query(None),
) -> List[dict]:
    operator_id = None if policy.is_allowed(user, "view_all_shifts") else user.id
    shifts = shift_service.list_shifts(db, active=active, operator_id=operator_id)
    return [serialize_shift(s) for s in shifts]


@router.get("/{shift_id}")
def get_shift(
    shift_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    policy: AuthorizationPolicy = Depends(get_policy),
):
    shift = shift_service.get_shift(db, shift_id)
    shift_service.ensure_shift_access(shift, user, policy)
    return serialize_shift(shift)


@router.get("/{shift_id}/reconciliation")
def shift_reconciliation(
    shift_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    policy: AuthorizationPolicy = Depends(get_policy),
    closing_cash: Optional[Decimal] = Query(None),
):
    shift = shift_service.get_shift(db, shift_id)
    shift_service.ensure_shift_access(shift, user, policy)
    rec = shift_service.reconcile_shift(db, shift)
    result = serialize_reconciliation(rec)
    if closing_cash is not None:
        result["difference"] = serialize_difference(classify_difference(closing_cash, rec.expected_cash))
    logger.info("shift_reconciliation turno=%s esperado=%s", shift_id, rec.expected_cash)
    return result
