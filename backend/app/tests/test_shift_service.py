from decimal import Decimal

import pytest

from app.core.errors import AuthorizationError, InvalidStateError, NotFoundError, ValidationError
from app.core.policy import RoleBasedPolicy
from app.models.shift import Shift
from app.services import shift_service
from app.services.cash_ledger_service import record_transaction


def test_start_shift_is_idempotent(db, cashier):
    first = shift_service.start_shift(db, cashier.id, "Vendedor", Decimal("100"))
    second = shift_service.start_shift(db, cashier.id, "Vendedor", Decimal("999"))

    assert first.id == second.id
    assert second.opening_cash == Decimal("100.00")
    assert db.query(Shift).count() == 1


def test_each_operator_gets_own_shift(db, cashier, admin):
    a = shift_service.start_shift(db, cashier.id, "Vendedor", 0)
    b = shift_service.start_shift(db, admin.id, "Admin", 0)
    assert a.id != b.id
    assert db.query(Shift).filter(Shift.active == True).count() == 2  # noqa: E712


def test_negative_opening_cash_rejected(db, cashier):
    with pytest.raises(ValidationError):
        shift_service.start_shift(db, cashier.id, "Vendedor", Decimal("-1"))
    assert db.query(Shift).count() == 0


def test_close_shift_records_totals_and_difference(db, open_shift):
    record_transaction(db, open_shift.id, "income", "venta", Decimal("50"), "efectivo")
    record_transaction(db, open_shift.id, "expense", "gasto", Decimal("20"), "efectivo")
    record_transaction(db, open_shift.id, "income", "venta", Decimal("30"), "transferencia")

    closure = shift_service.close_shift(db, open_shift.id, Decimal("150"))

    assert closure.reconciliation.expected_cash == Decimal("160.00")
    assert closure.difference.difference == Decimal("-10.00")
    assert closure.difference.status == "shortage"
    shift = closure.shift
    assert shift.active is False
    assert shift.end_date is not None
    assert shift.closing_cash == Decimal("150.00")
    assert shift.total_expenses == Decimal("20.00")
    # Sin ventas registradas como Sale, solo movimientos manuales
    assert shift.total_sales == Decimal("0.00")


def test_close_twice_is_invalid(db, open_shift):
    shift_service.close_shift(db, open_shift.id, Decimal("100"))
    with pytest.raises(InvalidStateError):
        shift_service.close_shift(db, open_shift.id, Decimal("100"))


def test_close_missing_shift(db):
    with pytest.raises(NotFoundError):
        shift_service.close_shift(db, 999, Decimal("0"))


def test_close_with_negative_cash_keeps_shift_open(db, open_shift):
    with pytest.raises(ValidationError):
        shift_service.close_shift(db, open_shift.id, Decimal("-5"))
    db.refresh(open_shift)
    assert open_shift.active is True


def test_new_shift_after_close(db, cashier, open_shift):
    shift_service.close_shift(db, open_shift.id, Decimal("100"))
    new = shift_service.start_shift(db, cashier.id, "Vendedor", Decimal("50"))
    assert new.id != open_shift.id
    assert new.active is True


def test_shift_access_for_owner_and_admin(db, cashier, admin, open_shift):
    policy = RoleBasedPolicy(None)
    shift_service.ensure_shift_access(open_shift, cashier, policy)
    shift_service.ensure_shift_access(open_shift, admin, policy)

    admin_shift = shift_service.start_shift(db, admin.id, "Administrador", Decimal("0"))
    with pytest.raises(AuthorizationError):
        shift_service.ensure_shift_access(admin_shift, cashier, policy)


def test_list_closures_uses_declared_cash(db, cashier, admin, open_shift):
    record_transaction(db, open_shift.id, "income", "venta", Decimal("50"), "efectivo")
    shift_service.close_shift(db, open_shift.id, Decimal("140"))
    admin_shift = shift_service.start_shift(db, admin.id, "Administrador", Decimal("0"))
    shift_service.close_shift(db, admin_shift.id, Decimal("0"))
    shift_service.start_shift(db, cashier.id, "Vendedor", Decimal("10"))

    closures = shift_service.list_closures(db, operator_id=cashier.id)
    assert [c.shift.id for c in closures] == [open_shift.id]
    closure = closures[0]
    assert closure.reconciliation.expected_cash == Decimal("150.00")
    assert closure.difference.closing_cash == Decimal("140.00")
    assert closure.difference.difference == Decimal("-10.00")
    assert closure.difference.status == "shortage"

    assert len(shift_service.list_closures(db)) == 2
