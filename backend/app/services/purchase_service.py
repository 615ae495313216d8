"""
Facturas de compra a proveedores y sus pagos.

Crear una factura ingresa el stock de cada item; cada pago registra un
egreso en la caja del turno indicado.
"""
import logging
from decimal import Decimal
from typing import Any, List, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import NotFoundError, ValidationError
from app.core.folio_service import generate_folio
from app.core.payment_methods import LEDGER_METHODS, PURCHASE_CATEGORY, TransactionType, normalize_method
from app.core.serialization_helpers import to_money
from app.models.purchase import PurchaseInvoice, PurchaseInvoiceItem, PurchasePayment
from app.services import inventory_service
from app.services.cash_ledger_service import append_transaction, get_open_shift


logger = logging.getLogger(__name__)

PENDING = "pendiente"
PAID = "pagada"


def _get(data: Any, name: str, default: Any = None) -> Any:
    if isinstance(data, dict):
        return data.get(name, default)
    return getattr(data, name, default)


def get_invoice(db: Session, invoice_id: int) -> PurchaseInvoice:
    invoice = db.query(PurchaseInvoice).filter(PurchaseInvoice.id == invoice_id).first()
    if not invoice:
        raise NotFoundError(f"Factura {invoice_id} no encontrada")
    return invoice


def list_invoices(db: Session, status: Optional[str] = None, supplier: Optional[str] = None) -> List[PurchaseInvoice]:
    query = db.query(PurchaseInvoice)
    if status:
        query = query.filter(PurchaseInvoice.status == status)
    if supplier:
        query = query.filter(PurchaseInvoice.supplier == supplier.strip())
    return query.order_by(PurchaseInvoice.created_at.desc(), PurchaseInvoice.id.desc()).all()


def remaining_amount(invoice: PurchaseInvoice) -> Decimal:
    return to_money(invoice.total) - to_money(invoice.paid_amount)


def create_invoice(db: Session, supplier: str, items: List[Any], user_name: str = "") -> PurchaseInvoice:
    """
    Registra una factura de compra e ingresa el stock de sus productos.

    Raises:
        ValidationError: Sin proveedor, sin items, cantidad o costo inválidos
        NotFoundError: Producto inexistente
    """
    supplier = (supplier or "").strip()
    if not supplier:
        raise ValidationError("El proveedor es obligatorio")
    if not items:
        raise ValidationError("La factura debe tener al menos un item")

    lines = []
    for item in items:
        product = inventory_service.get_product(db, _get(item, "product_id"))
        quantity = int(_get(item, "quantity", 0) or 0)
        unit_cost = to_money(_get(item, "unit_cost", 0))
        if quantity <= 0:
            raise ValidationError(f"Cantidad inválida para {product.name}: {quantity}")
        if unit_cost < 0:
            raise ValidationError(f"Costo inválido para {product.name}: {unit_cost:.2f}")
        lines.append((product, quantity, unit_cost))

    try:
        invoice = PurchaseInvoice(
            invoice_number=generate_folio(db, "COMPRA"),
            supplier=supplier,
            paid_amount=Decimal("0.00"),
            status=PENDING,
        )
        total = Decimal("0.00")
        for product, quantity, unit_cost in lines:
            subtotal = to_money(unit_cost * quantity)
            total += subtotal
            invoice.items.append(
                PurchaseInvoiceItem(
                    product_id=product.id,
                    product_name=product.name,
                    quantity=quantity,
                    unit_cost=unit_cost,
                    subtotal=subtotal,
                )
            )
        invoice.total = total
        db.add(invoice)
        db.flush()

        for product, quantity, unit_cost in lines:
            product.cost = unit_cost
            inventory_service.apply_stock_change(
                db,
                product,
                quantity,
                inventory_service.PURCHASE,
                user_name=user_name,
                supplier=supplier,
                reference=invoice.invoice_number,
            )
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("create_invoice: error registrando la factura de %s", supplier)
        raise
    db.refresh(invoice)
    logger.info("create_invoice: %s proveedor=%s total=%s", invoice.invoice_number, supplier, invoice.total)
    return invoice


def register_payment(
    db: Session,
    invoice_id: int,
    shift_id: int,
    amount: Any,
    payment_method: str,
) -> PurchasePayment:
    """
    Registra un pago (total o parcial) de una factura.

    El pago se asienta como egreso "compra" en la caja del turno.

    Raises:
        NotFoundError: Factura o turno inexistente
        InvalidStateError: Turno cerrado
        ValidationError: Monto no positivo, mayor al saldo o método inválido
    """
    invoice = get_invoice(db, invoice_id)
    method = normalize_method(payment_method)
    if method not in LEDGER_METHODS:
        raise ValidationError(f"Método de pago inválido: {method}. Debe ser uno de {', '.join(LEDGER_METHODS)}")
    try:
        value = to_money(amount)
    except ArithmeticError:
        raise ValidationError(f"Monto inválido: {amount}")
    if value <= 0:
        raise ValidationError(f"El monto debe ser mayor a 0 (recibido {value:.2f})")
    remaining = remaining_amount(invoice)
    if value - remaining > settings.money_epsilon:
        raise ValidationError(f"El monto ({value:.2f}) supera el saldo pendiente ({remaining:.2f})")
    get_open_shift(db, shift_id)

    try:
        tx = append_transaction(
            db,
            shift_id=shift_id,
            type=TransactionType.expense.value,
            category=PURCHASE_CATEGORY,
            amount=value,
            payment_method=method,
            description=f"Pago factura {invoice.invoice_number} - {invoice.supplier}",
        )
        payment = PurchasePayment(
            invoice_id=invoice.id,
            cash_transaction_id=tx.id,
            amount=value,
            payment_method=method,
        )
        db.add(payment)
        invoice.paid_amount = to_money(invoice.paid_amount) + value
        if remaining_amount(invoice) <= settings.money_epsilon:
            invoice.status = PAID
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("register_payment: error pagando la factura %s", invoice_id)
        raise
    db.refresh(payment)
    logger.info(
        "register_payment: factura %s pago=%s %s estado=%s",
        invoice.invoice_number, value, method, invoice.status,
    )
    return payment
