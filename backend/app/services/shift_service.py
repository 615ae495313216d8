"""
Servicio de turnos: apertura, cierre y arqueo de caja por operador.

Un turno abierto pasa a cerrado una sola vez y nunca se reabre ni se borra.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.errors import AuthorizationError, InvalidStateError, NotFoundError, ValidationError
from app.core.payment_methods import TransactionType
from app.core.policy import AuthorizationPolicy
from app.core.serialization_helpers import to_money
from app.core.time_utils import utcnow
from app.models.cash_transaction import CashTransaction
from app.models.sale import Sale
from app.models.shift import Shift
from app.models.user import User
from app.services.cash_ledger_service import shift_transactions
from app.services.reconciliation_service import (
    CashDifference,
    Reconciliation,
    calculate_reconciliation,
    classify_difference,
)


logger = logging.getLogger(__name__)


@dataclass
class ShiftClosure:
    shift: Shift
    reconciliation: Reconciliation
    difference: CashDifference


def _non_negative(value: Any, label: str) -> Decimal:
    try:
        amount = to_money(value)
    except ArithmeticError:
        raise ValidationError(f"{label} inválido: {value}")
    if amount < 0:
        raise ValidationError(f"{label} no puede ser negativo (recibido {amount:.2f})")
    return amount


def get_shift(db: Session, shift_id: int) -> Shift:
    shift = db.query(Shift).filter(Shift.id == shift_id).first()
    if not shift:
        raise NotFoundError(f"Turno {shift_id} no encontrado")
    return shift


def ensure_shift_access(shift: Shift, user: User, policy: AuthorizationPolicy) -> None:
    """Solo el dueño del turno o quien puede ver todos los turnos opera sobre él."""
    if shift.user_id != user.id and not policy.is_allowed(user, "view_all_shifts"):
        raise AuthorizationError("El turno pertenece a otro operador")


def get_active_shift(db: Session, operator_id: int) -> Optional[Shift]:
    return (
        db.query(Shift)
        .filter(Shift.user_id == operator_id, Shift.active == True)  # noqa: E712
        .order_by(Shift.start_date.desc())
        .first()
    )


def list_shifts(db: Session, active: Optional[bool] = None, operator_id: Optional[int] = None) -> List[Shift]:
    query = db.query(Shift)
    if active is not None:
        query = query.filter(Shift.active == active)
    if operator_id is not None:
        query = query.filter(Shift.user_id == operator_id)
    return query.order_by(Shift.start_date.desc(), Shift.id.desc()).all()


def start_shift(db: Session, operator_id: int, operator_name: str, opening_cash: Any) -> Shift:
    """
    Abre un turno para el operador.

    Si el operador ya tiene un turno activo se devuelve ese mismo turno sin
    cambios; nunca se crean dos turnos abiertos para el mismo operador.

    Raises:
        ValidationError: Efectivo inicial negativo
    """
    existing = get_active_shift(db, operator_id)
    if existing:
        logger.info("start_shift: operador %s ya tiene el turno %s abierto", operator_id, existing.id)
        return existing

    opening = _non_negative(opening_cash, "Efectivo inicial")
    shift = Shift(
        user_id=operator_id,
        user_name=(operator_name or "").strip(),
        start_date=utcnow(),
        end_date=None,
        opening_cash=opening,
        closing_cash=None,
        total_sales=Decimal("0.00"),
        total_expenses=Decimal("0.00"),
        active=True,
    )
    db.add(shift)
    db.commit()
    db.refresh(shift)
    logger.info("start_shift: turno %s abierto por %s con %s", shift.id, operator_id, opening)
    return shift


def shift_sales_total(db: Session, shift_id: int) -> Decimal:
    total = db.query(func.coalesce(func.sum(Sale.total), 0)).filter(Sale.shift_id == shift_id).scalar()
    return to_money(total)


def shift_expenses_total(db: Session, shift_id: int) -> Decimal:
    total = (
        db.query(func.coalesce(func.sum(CashTransaction.amount), 0))
        .filter(
            CashTransaction.shift_id == shift_id,
            CashTransaction.type == TransactionType.expense.value,
        )
        .scalar()
    )
    return to_money(total)


def reconcile_shift(db: Session, shift: Shift) -> Reconciliation:
    """Saldos del turno calculados con todos sus movimientos actuales."""
    return calculate_reconciliation(shift_transactions(db, shift.id), shift.opening_cash)


def close_shift(db: Session, shift_id: int, closing_cash: Any) -> ShiftClosure:
    """
    Cierra el turno con el efectivo declarado.

    Calcula y guarda total de ventas y de egresos del turno, y devuelve
    el arqueo con la diferencia entre efectivo declarado y esperado.

    Raises:
        NotFoundError: El turno no existe
        InvalidStateError: El turno ya estaba cerrado
        ValidationError: Efectivo declarado negativo
    """
    shift = get_shift(db, shift_id)
    if not shift.active:
        raise InvalidStateError(f"El turno {shift_id} ya está cerrado")
    declared = _non_negative(closing_cash, "Efectivo de cierre")

    reconciliation = reconcile_shift(db, shift)
    difference = classify_difference(declared, reconciliation.expected_cash)

    shift.total_sales = shift_sales_total(db, shift.id)
    shift.total_expenses = shift_expenses_total(db, shift.id)
    shift.end_date = utcnow()
    shift.closing_cash = declared
    shift.active = False
    db.commit()
    db.refresh(shift)

    logger.info(
        "close_shift: turno %s cerrado esperado=%s declarado=%s diferencia=%s (%s)",
        shift.id, difference.expected_cash, declared, difference.difference, difference.status,
    )
    return ShiftClosure(shift=shift, reconciliation=reconciliation, difference=difference)


def list_closures(db: Session, operator_id: Optional[int] = None) -> List[ShiftClosure]:
    """
    Historial de cierres: turnos cerrados con su arqueo recalculado.

    La diferencia se clasifica contra el efectivo declarado al cerrar.
    """
    closures = []
    for shift in list_shifts(db, active=False, operator_id=operator_id):
        reconciliation = reconcile_shift(db, shift)
        difference = classify_difference(shift.closing_cash or 0, reconciliation.expected_cash)
        closures.append(ShiftClosure(shift=shift, reconciliation=reconciliation, difference=difference))
    return closures
