"""
Cálculo de saldos de caja (arqueo) a partir de los movimientos de un turno.

Funciones puras: no consultan la base de datos ni guardan estado. Los
llamadores leen los movimientos frescos y pasan la apertura del turno.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional

from app.core.config import settings
from app.core.payment_methods import CASH_METHOD, LEDGER_METHODS, TransactionType
from app.core.serialization_helpers import to_money


BALANCED = "balanced"
SURPLUS = "surplus"
SHORTAGE = "shortage"

# Mensajes que ve el operador al cerrar la caja
DIFFERENCE_MESSAGES = {
    BALANCED: "La caja cuadra",
    SURPLUS: "Hay de más",
    SHORTAGE: "Faltan",
}

AGGREGATE = "aggregate"
CASH_ONLY = "cash_only"


@dataclass
class Reconciliation:
    opening_cash: Decimal
    income_by_method: Dict[str, Decimal]
    expense_by_method: Dict[str, Decimal]
    balance_by_method: Dict[str, Decimal]
    total_income: Decimal
    total_expense: Decimal
    balance: Decimal
    expected_cash: Decimal
    expected_cash_mode: str = AGGREGATE
    transaction_count: int = 0

    @property
    def cash_balance(self) -> Decimal:
        return self.balance_by_method[CASH_METHOD]


@dataclass
class CashDifference:
    expected_cash: Decimal
    closing_cash: Decimal
    difference: Decimal
    status: str
    message: str = field(default="")


def _field(row: Any, name: str) -> Any:
    if isinstance(row, dict):
        return row.get(name)
    return getattr(row, name)


def calculate_reconciliation(
    transactions: Iterable[Any],
    opening_cash: Any,
    expected_cash_mode: Optional[str] = None,
) -> Reconciliation:
    """
    Calcula ingresos, egresos y saldo por método de pago.

    Solo el efectivo suma la apertura del turno: es el único método con
    fondo previo en el cajón. El efectivo esperado usa por defecto el
    balance agregado de todos los métodos (ver Settings.expected_cash_mode).

    Args:
        transactions: CashTransaction o dicts con type, amount y payment_method
        opening_cash: Efectivo declarado al abrir el turno
        expected_cash_mode: 'aggregate' o 'cash_only'; por defecto el configurado

    Returns:
        Reconciliation con los saldos por método y totales
    """
    mode = expected_cash_mode or settings.expected_cash_mode
    if mode not in (AGGREGATE, CASH_ONLY):
        raise ValueError(f"Modo de efectivo esperado inválido: {mode}")

    opening = to_money(opening_cash)
    income = {method: Decimal("0.00") for method in LEDGER_METHODS}
    expense = {method: Decimal("0.00") for method in LEDGER_METHODS}

    count = 0
    for tx in transactions:
        count += 1
        method = _field(tx, "payment_method")
        amount = to_money(_field(tx, "amount"))
        bucket = income if _field(tx, "type") == TransactionType.income.value else expense
        # Métodos fuera del catálogo igual se reportan
        income.setdefault(method, Decimal("0.00"))
        expense.setdefault(method, Decimal("0.00"))
        bucket[method] += amount

    balance_by_method = {}
    for method in income:
        balance_by_method[method] = income[method] - expense[method]
        if method == CASH_METHOD:
            balance_by_method[method] += opening

    total_income = sum(income.values(), Decimal("0.00"))
    total_expense = sum(expense.values(), Decimal("0.00"))
    balance = total_income - total_expense

    if mode == CASH_ONLY:
        expected_cash = balance_by_method[CASH_METHOD]
    else:
        expected_cash = opening + balance

    return Reconciliation(
        opening_cash=opening,
        income_by_method=income,
        expense_by_method=expense,
        balance_by_method=balance_by_method,
        total_income=total_income,
        total_expense=total_expense,
        balance=balance,
        expected_cash=expected_cash,
        expected_cash_mode=mode,
        transaction_count=count,
    )


def classify_difference(closing_cash: Any, expected_cash: Any, epsilon: Optional[Decimal] = None) -> CashDifference:
    """
    Compara el efectivo declarado con el esperado.

    |diferencia| <= epsilon cuadra; positiva es sobrante; negativa es faltante.
    """
    eps = epsilon if epsilon is not None else settings.money_epsilon
    closing = to_money(closing_cash)
    expected = to_money(expected_cash)
    difference = closing - expected

    if abs(difference) <= eps:
        status = BALANCED
    elif difference > 0:
        status = SURPLUS
    else:
        status = SHORTAGE

    return CashDifference(
        expected_cash=expected,
        closing_cash=closing,
        difference=difference,
        status=status,
        message=_difference_message(status, difference),
    )


def _difference_message(status: str, difference: Decimal) -> str:
    if status == BALANCED:
        return DIFFERENCE_MESSAGES[status]
    return f"{DIFFERENCE_MESSAGES[status]} {abs(difference):.2f}"
