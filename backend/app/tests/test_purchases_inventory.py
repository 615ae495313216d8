import re
from decimal import Decimal

import pytest

from app.core.errors import AuthorizationError, InvalidStateError, ValidationError
from app.core.policy import RoleBasedPolicy
from app.core.security import hash_password
from app.models.cash_transaction import CashTransaction
from app.models.inventory_movement import InventoryMovement
from app.services import inventory_service, product_service, purchase_service, shift_service


def test_create_invoice_increments_stock(db, products):
    agua, alfajor = products["AGUA500"], products["ALF01"]
    invoice = purchase_service.create_invoice(
        db,
        "Distribuidora Norte",
        [
            {"product_id": agua.id, "quantity": 12, "unit_cost": "28.50"},
            {"product_id": alfajor.id, "quantity": 6, "unit_cost": "40"},
        ],
        user_name="Administrador",
    )

    assert re.match(r"^C-\d{8}-\d{6}$", invoice.invoice_number)
    assert invoice.total == Decimal("582.00")
    assert invoice.status == "pendiente"
    db.refresh(agua)
    db.refresh(alfajor)
    assert agua.stock == 22
    assert agua.cost == Decimal("28.50")
    assert alfajor.stock == 11

    movements = db.query(InventoryMovement).order_by(InventoryMovement.id).all()
    assert [(m.movement_type, m.quantity, m.reference) for m in movements] == [
        ("purchase", 12, invoice.invoice_number),
        ("purchase", 6, invoice.invoice_number),
    ]


def test_invoice_validation(db, products):
    with pytest.raises(ValidationError):
        purchase_service.create_invoice(db, " ", [{"product_id": products["AGUA500"].id, "quantity": 1, "unit_cost": 1}])
    with pytest.raises(ValidationError):
        purchase_service.create_invoice(db, "Prov", [])
    with pytest.raises(ValidationError):
        purchase_service.create_invoice(db, "Prov", [{"product_id": products["AGUA500"].id, "quantity": 0, "unit_cost": 1}])


def test_payments_record_expenses_and_settle_invoice(db, open_shift, products):
    invoice = purchase_service.create_invoice(
        db, "Distribuidora Norte", [{"product_id": products["AGUA500"].id, "quantity": 10, "unit_cost": "30"}]
    )

    purchase_service.register_payment(db, invoice.id, open_shift.id, Decimal("100"), "efectivo")
    db.refresh(invoice)
    assert invoice.paid_amount == Decimal("100.00")
    assert invoice.status == "pendiente"

    with pytest.raises(ValidationError):
        purchase_service.register_payment(db, invoice.id, open_shift.id, Decimal("250"), "efectivo")

    payment = purchase_service.register_payment(db, invoice.id, open_shift.id, Decimal("200"), "tarjeta")
    db.refresh(invoice)
    assert invoice.status == "pagada"
    assert purchase_service.remaining_amount(invoice) == Decimal("0.00")

    rows = db.query(CashTransaction).order_by(CashTransaction.id).all()
    assert [(r.type, r.category, r.payment_method, r.amount) for r in rows] == [
        ("expense", "compra", "efectivo", Decimal("100.00")),
        ("expense", "compra", "tarjeta", Decimal("200.00")),
    ]
    assert payment.cash_transaction_id == rows[1].id

    rec = shift_service.reconcile_shift(db, open_shift)
    assert rec.balance_by_method["efectivo"] == Decimal("0.00")
    assert rec.balance_by_method["tarjeta"] == Decimal("-200.00")


def test_payment_on_closed_shift(db, open_shift, products):
    invoice = purchase_service.create_invoice(
        db, "Prov", [{"product_id": products["AGUA500"].id, "quantity": 1, "unit_cost": "30"}]
    )
    shift_service.close_shift(db, open_shift.id, Decimal("100"))
    with pytest.raises(InvalidStateError):
        purchase_service.register_payment(db, invoice.id, open_shift.id, Decimal("30"), "efectivo")


def test_receive_stock_requires_admin_or_supervisor(db, admin, cashier, products):
    agua = products["AGUA500"]
    policy = RoleBasedPolicy(hash_password("clave-supervisor"))

    with pytest.raises(AuthorizationError):
        inventory_service.receive_stock(db, policy, cashier, agua.id, 5)
    with pytest.raises(AuthorizationError):
        inventory_service.receive_stock(db, policy, cashier, agua.id, 5, supervisor_passphrase="otra")

    movement = inventory_service.receive_stock(
        db, policy, cashier, agua.id, 5, supplier="Prov", supervisor_passphrase="clave-supervisor"
    )
    assert (movement.previous_stock, movement.new_stock) == (10, 15)
    assert movement.user_name == "Vendedor Demo"

    inventory_service.receive_stock(db, policy, admin, agua.id, 2)
    db.refresh(agua)
    assert agua.stock == 17

    with pytest.raises(ValidationError):
        inventory_service.receive_stock(db, policy, admin, agua.id, 0)


def test_without_supervisor_hash_only_admin_receives(db, cashier, products):
    policy = RoleBasedPolicy(None)
    with pytest.raises(AuthorizationError):
        inventory_service.receive_stock(db, policy, cashier, products["AGUA500"].id, 1, supervisor_passphrase="x")


def test_list_movements_filters(db, admin, products):
    policy = RoleBasedPolicy(None)
    inventory_service.receive_stock(db, policy, admin, products["AGUA500"].id, 3, supplier="Distribuidora Norte")
    inventory_service.receive_stock(db, policy, admin, products["ALF01"].id, 4, supplier="Golosinas SA")

    assert len(inventory_service.list_movements(db, movement_type="purchase")) == 2
    assert len(inventory_service.list_movements(db, product="alf")) == 1
    assert len(inventory_service.list_movements(db, supplier="norte")) == 1
    assert len(inventory_service.list_movements(db, movement_type="sale")) == 0
    with pytest.raises(ValidationError):
        inventory_service.list_movements(db, movement_type="ajuste")


def test_low_stock(db, products):
    codes = [p.code for p in inventory_service.low_stock_products(db)]
    assert codes == ["ALF01"]


def test_searches_treat_wildcards_literally(db, admin, products):
    policy = RoleBasedPolicy(None)
    inventory_service.receive_stock(db, policy, admin, products["AGUA500"].id, 3, supplier="Distribuidora Norte")

    assert inventory_service.list_movements(db, product="%") == []
    assert inventory_service.list_movements(db, supplier="_") == []
    assert product_service.search_products(db, q="%") == []
    assert product_service.search_products(db, q="a_ua") == []
    assert [p.code for p in product_service.search_products(db, q="agua")] == ["AGUA500"]
