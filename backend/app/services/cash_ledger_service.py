"""
Libro de caja: movimientos de ingreso y egreso por turno y método de pago.

Los movimientos solo se agregan. Este módulo no modifica turnos ni ventas;
los saldos se recalculan bajo demanda con reconciliation_service.
"""
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.errors import InvalidStateError, NotFoundError, ValidationError
from app.core.payment_methods import LEDGER_METHODS, TRANSACTION_TYPES, normalize_method
from app.core.query_helpers import LIKE_ESCAPE, contains_pattern
from app.core.serialization_helpers import to_money
from app.core.time_utils import period_bounds
from app.models.cash_transaction import CashTransaction
from app.models.shift import Shift


logger = logging.getLogger(__name__)


@dataclass
class TransactionFilter:
    shift_id: Optional[int] = None
    operator_id: Optional[int] = None
    type: Optional[str] = None
    payment_method: Optional[str] = None
    category: Optional[str] = None
    period: str = "all"
    start: Optional[date] = None
    end: Optional[date] = None


def validate_entry(type: str, amount: Any, payment_method: str) -> Decimal:
    """
    Valida los datos de un movimiento antes de escribir.

    Returns:
        Monto normalizado a dos decimales

    Raises:
        ValidationError: Monto no positivo, tipo o método desconocido
    """
    if type not in TRANSACTION_TYPES:
        raise ValidationError(f"Tipo de movimiento inválido: {type}. Debe ser 'income' o 'expense'")
    if payment_method not in LEDGER_METHODS:
        raise ValidationError(
            f"Método de pago inválido: {payment_method}. Debe ser uno de {', '.join(LEDGER_METHODS)}"
        )
    try:
        value = to_money(amount)
    except ArithmeticError:
        raise ValidationError(f"Monto inválido: {amount}")
    if value <= 0:
        raise ValidationError(f"El monto debe ser mayor a 0 (recibido {value:.2f})")
    return value


def get_open_shift(db: Session, shift_id: int) -> Shift:
    shift = db.query(Shift).filter(Shift.id == shift_id).first()
    if not shift:
        raise NotFoundError(f"Turno {shift_id} no encontrado")
    if not shift.active:
        raise InvalidStateError(f"El turno {shift_id} está cerrado")
    return shift


def append_transaction(
    db: Session,
    shift_id: int,
    type: str,
    category: str,
    amount: Decimal,
    payment_method: str,
    description: str = "",
) -> CashTransaction:
    """Agrega el movimiento a la sesión sin confirmar (para transacciones compuestas)."""
    tx = CashTransaction(
        shift_id=shift_id,
        type=type,
        category=(category or "").strip(),
        amount=amount,
        payment_method=payment_method,
        description=(description or "").strip(),
    )
    db.add(tx)
    db.flush()
    return tx


def record_transaction(
    db: Session,
    shift_id: int,
    type: str,
    category: str,
    amount: Any,
    payment_method: str,
    description: str = "",
) -> CashTransaction:
    """
    Registra un movimiento manual de caja.

    Args:
        db: Sesión de base de datos
        shift_id: Turno al que pertenece el movimiento
        type: 'income' o 'expense'
        category: Texto libre ('venta', 'gasto', ...)
        amount: Monto positivo
        payment_method: efectivo, transferencia, qr, expensas o tarjeta
        description: Detalle libre

    Returns:
        CashTransaction creada

    Raises:
        ValidationError: Datos inválidos
        NotFoundError: El turno no existe
        InvalidStateError: El turno está cerrado
    """
    method = normalize_method(payment_method)
    value = validate_entry(type, amount, method)
    get_open_shift(db, shift_id)

    tx = append_transaction(db, shift_id, type, category, value, method, description)
    db.commit()
    db.refresh(tx)
    logger.info(
        "cash transaction id=%s shift=%s type=%s method=%s amount=%s",
        tx.id, shift_id, type, method, value,
    )
    return tx


def list_transactions(db: Session, filters: Optional[TransactionFilter] = None) -> List[CashTransaction]:
    """
    Lista movimientos filtrados, del más nuevo al más viejo.

    No tiene efectos secundarios: la misma entrada sobre los mismos datos
    devuelve siempre el mismo resultado.
    """
    filters = filters or TransactionFilter()
    query = db.query(CashTransaction)

    if filters.shift_id is not None:
        query = query.filter(CashTransaction.shift_id == filters.shift_id)
    if filters.operator_id is not None:
        own_shifts = select(Shift.id).where(Shift.user_id == filters.operator_id)
        query = query.filter(CashTransaction.shift_id.in_(own_shifts))
    if filters.type:
        query = query.filter(CashTransaction.type == filters.type)
    if filters.payment_method:
        query = query.filter(CashTransaction.payment_method == normalize_method(filters.payment_method))
    if filters.category:
        needle = filters.category.strip().lower()
        if needle:
            query = query.filter(
                func.lower(CashTransaction.category).like(contains_pattern(needle), escape=LIKE_ESCAPE)
            )

    since, until = period_bounds(filters.period, filters.start, filters.end)
    if since is not None:
        query = query.filter(CashTransaction.created_at >= since)
    if until is not None:
        query = query.filter(CashTransaction.created_at < until)

    return query.order_by(CashTransaction.created_at.desc(), CashTransaction.id.desc()).all()


def shift_transactions(db: Session, shift_id: int) -> List[CashTransaction]:
    return list_transactions(db, TransactionFilter(shift_id=shift_id))
