from datetime import date, datetime, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest

from app.core.errors import InvalidStateError, NotFoundError, ValidationError
from app.core.time_utils import period_bounds
from app.models.cash_transaction import CashTransaction
from app.services import shift_service
from app.services.cash_ledger_service import TransactionFilter, list_transactions, record_transaction


def test_record_appends_one_row_per_call(db, open_shift):
    entries = [
        ("income", "venta", "10.00", "efectivo"),
        ("expense", "gasto", "3.50", "efectivo"),
        ("income", "venta", "7.25", "qr"),
        ("expense", "Proveedor", "100.00", "tarjeta"),
    ]
    for type, category, amount, method in entries:
        record_transaction(db, open_shift.id, type, category, Decimal(amount), method, "detalle")

    rows = db.query(CashTransaction).order_by(CashTransaction.id).all()
    assert len(rows) == len(entries)
    for row, (type, category, amount, method) in zip(rows, entries):
        assert row.shift_id == open_shift.id
        assert row.type == type
        assert row.category == category
        assert row.amount == Decimal(amount)
        assert row.payment_method == method


@pytest.mark.parametrize(
    "type, amount, method",
    [
        ("income", "0", "efectivo"),
        ("income", "-5", "efectivo"),
        ("refund", "5", "efectivo"),
        ("income", "5", "cheque"),
    ],
)
def test_invalid_entries_are_rejected(db, open_shift, type, amount, method):
    with pytest.raises(ValidationError):
        record_transaction(db, open_shift.id, type, "venta", Decimal(amount), method)
    assert db.query(CashTransaction).count() == 0


def test_method_is_normalized(db, open_shift):
    tx = record_transaction(db, open_shift.id, "income", "expensas", Decimal("12"), " Expensa ")
    assert tx.payment_method == "expensas"


def test_closed_or_missing_shift(db, open_shift):
    with pytest.raises(NotFoundError):
        record_transaction(db, 999, "income", "venta", Decimal("1"), "efectivo")

    shift_service.close_shift(db, open_shift.id, Decimal("100"))
    with pytest.raises(InvalidStateError):
        record_transaction(db, open_shift.id, "income", "venta", Decimal("1"), "efectivo")
    assert db.query(CashTransaction).count() == 0


def test_list_filters(db, open_shift):
    record_transaction(db, open_shift.id, "income", "Venta", Decimal("10"), "efectivo")
    record_transaction(db, open_shift.id, "income", "venta", Decimal("20"), "qr")
    record_transaction(db, open_shift.id, "expense", "Gasto limpieza", Decimal("5"), "efectivo")

    assert len(list_transactions(db, TransactionFilter(shift_id=open_shift.id))) == 3
    assert len(list_transactions(db, TransactionFilter(type="expense"))) == 1
    assert len(list_transactions(db, TransactionFilter(payment_method="efectivo"))) == 2
    assert len(list_transactions(db, TransactionFilter(category="VENTA"))) == 2
    assert len(list_transactions(db, TransactionFilter(period="today"))) == 3

    newest_first = list_transactions(db)
    assert [tx.amount for tx in newest_first] == [Decimal("5.00"), Decimal("20.00"), Decimal("10.00")]


BA = ZoneInfo("America/Argentina/Buenos_Aires")
# Miércoles 21/10/2026 12:00 en Buenos Aires (UTC-3)
NOW = datetime(2026, 10, 21, 15, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "period, since",
    [
        ("today", datetime(2026, 10, 21, 3, 0)),
        ("week", datetime(2026, 10, 19, 3, 0)),
        ("month", datetime(2026, 10, 1, 3, 0)),
    ],
)
def test_period_bounds_use_local_midnight(period, since):
    assert period_bounds(period, now=NOW, tz=BA) == (since, None)


def test_period_bounds_all_and_custom():
    assert period_bounds("all", now=NOW, tz=BA) == (None, None)
    assert period_bounds("custom", date(2026, 10, 1), date(2026, 10, 2), now=NOW, tz=BA) == (
        datetime(2026, 10, 1, 3, 0),
        datetime(2026, 10, 3, 3, 0),
    )


def test_period_bounds_errors():
    with pytest.raises(ValidationError):
        period_bounds("year", now=NOW, tz=BA)
    with pytest.raises(ValidationError):
        period_bounds("custom", date(2026, 10, 1), None, now=NOW, tz=BA)
    with pytest.raises(ValidationError):
        period_bounds("custom", date(2026, 10, 5), date(2026, 10, 1), now=NOW, tz=BA)


def test_category_search_treats_wildcards_literally(db, open_shift):
    record_transaction(db, open_shift.id, "income", "venta", Decimal("10"), "efectivo")
    record_transaction(db, open_shift.id, "expense", "caja_chica", Decimal("5"), "efectivo")
    record_transaction(db, open_shift.id, "expense", "descuento 10%", Decimal("1"), "efectivo")

    assert [tx.category for tx in list_transactions(db, TransactionFilter(category="_"))] == ["caja_chica"]
    assert [tx.category for tx in list_transactions(db, TransactionFilter(category="%"))] == ["descuento 10%"]
    assert list_transactions(db, TransactionFilter(category="v_nta")) == []


def test_list_by_operator(db, admin, open_shift):
    admin_shift = shift_service.start_shift(db, admin.id, "Administrador", Decimal("0"))
    record_transaction(db, open_shift.id, "income", "venta", Decimal("10"), "efectivo")
    record_transaction(db, admin_shift.id, "income", "venta", Decimal("20"), "efectivo")

    own = list_transactions(db, TransactionFilter(operator_id=open_shift.user_id))
    assert [tx.shift_id for tx in own] == [open_shift.id]
    assert len(list_transactions(db)) == 2
