"""
Servicio de negocio para ventas del kiosco.

Convierte un carrito y un pago dividido en varios métodos en:
- la venta con sus items y pagos
- la baja de stock de cada producto
- un movimiento de caja por cada método de pago usado
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import InvalidStateError, NotFoundError, PartialFailureWarning, ValidationError
from app.core.folio_service import generate_folio
from app.core.payment_methods import (
    CASH_METHOD,
    SALE_CATEGORY,
    SALE_METHODS,
    TransactionType,
    normalize_method,
)
from app.core.serialization_helpers import to_money
from app.core.time_utils import period_bounds
from app.models.product import Product
from app.models.sale import Sale, SaleItem, SalePayment
from app.models.shift import Shift
from app.services import inventory_service
from app.services.cash_ledger_service import append_transaction


logger = logging.getLogger(__name__)

ATOMIC = "atomic"
SEQUENTIAL = "sequential"


@dataclass
class CartLine:
    product: Product
    quantity: int
    price: Decimal

    @property
    def subtotal(self) -> Decimal:
        return to_money(self.price * self.quantity)


@dataclass
class Tender:
    method: str
    amount: Decimal


@dataclass
class SaleResult:
    sale: Sale
    payments_defaulted: bool = False
    warnings: List[PartialFailureWarning] = field(default_factory=list)


def _get(data: Any, name: str, default: Any = None) -> Any:
    if isinstance(data, dict):
        return data.get(name, default)
    return getattr(data, name, default)


def build_cart(db: Session, items: List[Any]) -> List[CartLine]:
    """
    Arma las líneas del carrito desde los productos.

    Cada item lleva product_id, quantity y opcionalmente price (precio
    modificado a mano; si falta se usa el de catálogo).

    Raises:
        NotFoundError: Producto inexistente o inactivo
        ValidationError: Cantidad no positiva, precio negativo o stock insuficiente
    """
    lines: List[CartLine] = []
    requested: Dict[int, int] = {}
    for item in items:
        product_id = _get(item, "product_id")
        product = db.query(Product).filter(Product.id == product_id, Product.active == True).first()  # noqa: E712
        if not product:
            raise NotFoundError(f"Producto inválido: {product_id}")

        quantity = int(_get(item, "quantity", 0) or 0)
        if quantity <= 0:
            raise ValidationError(f"Cantidad inválida para {product.name}: {quantity}")

        raw_price = _get(item, "price")
        price = to_money(product.price if raw_price is None else raw_price)
        if price < 0:
            raise ValidationError(f"Precio inválido para {product.name}: {price:.2f}")

        requested[product.id] = requested.get(product.id, 0) + quantity
        if requested[product.id] > int(product.stock or 0):
            raise ValidationError(
                f"Stock insuficiente para {product.name}: disponible {product.stock}, solicitado {requested[product.id]}"
            )
        lines.append(CartLine(product=product, quantity=quantity, price=price))
    return lines


def normalize_payments(payments: Optional[List[Any]], total: Decimal) -> Tuple[List[Tender], bool]:
    """
    Normaliza los pagos recibidos.

    Los montos en cero se descartan. Sin pagos, se asume todo en efectivo.

    Returns:
        (lista de Tender, True si se aplicó el pago en efectivo por defecto)
    """
    tenders: List[Tender] = []
    for payment in payments or []:
        method = normalize_method(_get(payment, "method", ""))
        try:
            amount = to_money(_get(payment, "amount", 0))
        except ArithmeticError:
            raise ValidationError(f"Monto de pago inválido para {method}")
        if method not in SALE_METHODS:
            raise ValidationError(
                f"Método de pago inválido: {method}. Debe ser uno de {', '.join(SALE_METHODS)}"
            )
        if amount < 0:
            raise ValidationError(f"El monto de pago no puede ser negativo ({method}: {amount:.2f})")
        if amount == 0:
            continue
        tenders.append(Tender(method=method, amount=amount))

    if not tenders:
        return [Tender(method=CASH_METHOD, amount=total)], True
    return tenders, False


def validate_payments_total(tenders: List[Tender], total: Decimal) -> None:
    paid = sum((t.amount for t in tenders), Decimal("0.00"))
    if abs(paid - total) > settings.money_epsilon:
        raise ValidationError(
            f"La suma de los montos de pago ({paid:.2f}) no coincide con el total ({total:.2f})."
        )


def primary_payment_method(tenders: List[Tender]) -> str:
    """Etiqueta principal de la venta: efectivo si hubo efectivo, si no el primer método."""
    if any(t.method == CASH_METHOD for t in tenders):
        return CASH_METHOD
    return tenders[0].method


def sale_description(sale_number: str, customer_name: Optional[str], customer_lot: Optional[str]) -> str:
    description = f"Venta {sale_number}"
    if customer_name or customer_lot:
        description += f" - {customer_name or ''} (Lote {customer_lot or '-'})"
    return description


def _clean(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    return value or None


def _persist_sale(
    db: Session,
    shift: Shift,
    lines: List[CartLine],
    tenders: List[Tender],
    subtotal: Decimal,
    discount: Decimal,
    total: Decimal,
    customer_name: Optional[str],
    customer_lot: Optional[str],
) -> Sale:
    sale = Sale(
        sale_number=generate_folio(db, "VENTA"),
        user_id=shift.user_id,
        user_name=shift.user_name,
        shift_id=shift.id,
        subtotal=subtotal,
        discount=discount,
        total=total,
        payment_method=primary_payment_method(tenders),
        customer_name=customer_name,
        customer_lot=customer_lot,
    )
    for position, line in enumerate(lines):
        sale.items.append(
            SaleItem(
                product_id=line.product.id,
                position=position,
                product_name=line.product.name,
                quantity=line.quantity,
                price=line.price,
                subtotal=line.subtotal,
            )
        )
    for tender in tenders:
        sale.payments.append(SalePayment(method=tender.method, amount=tender.amount))
    db.add(sale)
    db.flush()
    return sale


def _decrement_stock(db: Session, sale: Sale, line: CartLine, shift: Shift) -> None:
    inventory_service.apply_stock_change(
        db,
        line.product,
        -line.quantity,
        inventory_service.SALE,
        user_name=shift.user_name,
        shift_id=shift.id,
        reference=sale.sale_number,
    )


def _append_ledger_entry(db: Session, sale: Sale, tender: Tender, shift: Shift) -> None:
    append_transaction(
        db,
        shift_id=shift.id,
        type=TransactionType.income.value,
        category=SALE_CATEGORY,
        amount=tender.amount,
        payment_method=tender.method,
        description=sale_description(sale.sale_number, sale.customer_name, sale.customer_lot),
    )


def complete_sale(
    db: Session,
    shift: Optional[Shift],
    items: List[Any],
    payments: Optional[List[Any]] = None,
    customer_name: Optional[str] = None,
    customer_lot: Optional[str] = None,
    discount: Any = 0,
    commit_mode: Optional[str] = None,
) -> SaleResult:
    """
    Registra una venta completa.

    Todas las validaciones se hacen antes de escribir. En modo 'atomic'
    (por defecto) venta, stock y caja se confirman juntos o no se confirma
    nada. En modo 'sequential' la venta se confirma primero y cada efecto
    posterior que falle se devuelve como PartialFailureWarning.

    Args:
        db: Sesión de base de datos
        shift: Turno abierto del operador
        items: Items con product_id, quantity y price opcional
        payments: Pagos con method y amount; vacío = todo efectivo
        customer_name: Nombre del cliente (obligatorio con pagos no efectivo)
        customer_lot: Lote del cliente (obligatorio con pagos no efectivo)
        discount: Descuento sobre el subtotal
        commit_mode: 'atomic' o 'sequential'; por defecto el configurado

    Returns:
        SaleResult con la venta persistida y las advertencias

    Raises:
        InvalidStateError: Carrito vacío o turno cerrado/inexistente
        NotFoundError: Producto inexistente
        ValidationError: Montos, método o datos de cliente inválidos
    """
    if not items:
        raise InvalidStateError("Carrito vacío")
    if shift is None or not shift.active:
        raise InvalidStateError("Sin turno activo")

    mode = commit_mode or settings.sale_commit_mode
    if mode not in (ATOMIC, SEQUENTIAL):
        raise ValueError(f"Modo de confirmación inválido: {mode}")

    lines = build_cart(db, items)
    subtotal = to_money(sum((line.subtotal for line in lines), Decimal("0.00")))
    discount_value = to_money(discount)
    if discount_value < 0 or discount_value > subtotal:
        raise ValidationError(f"Descuento inválido ({discount_value:.2f}) para un subtotal de {subtotal:.2f}")
    total = subtotal - discount_value
    if total <= 0:
        raise ValidationError("No hay importe para cobrar.")

    tenders, defaulted = normalize_payments(payments, total)
    validate_payments_total(tenders, total)

    name, lot = _clean(customer_name), _clean(customer_lot)
    if any(t.method != CASH_METHOD for t in tenders) and (not name or not lot):
        raise ValidationError(
            "Para pagos que no son en efectivo debés completar el nombre y el lote del cliente."
        )

    if mode == ATOMIC:
        result = _complete_atomic(db, shift, lines, tenders, subtotal, discount_value, total, name, lot)
    else:
        result = _complete_sequential(db, shift, lines, tenders, subtotal, discount_value, total, name, lot)
    result.payments_defaulted = defaulted

    logger.info(
        "complete_sale: venta %s turno=%s total=%s pagos=%s",
        result.sale.sale_number, shift.id, total, [(t.method, str(t.amount)) for t in tenders],
    )
    return result


def _complete_atomic(db, shift, lines, tenders, subtotal, discount, total, name, lot) -> SaleResult:
    try:
        sale = _persist_sale(db, shift, lines, tenders, subtotal, discount, total, name, lot)
        for line in lines:
            _decrement_stock(db, sale, line, shift)
        for tender in tenders:
            _append_ledger_entry(db, sale, tender, shift)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("complete_sale: error registrando la venta, no se guardó nada")
        raise
    db.refresh(sale)
    return SaleResult(sale=sale)


def _complete_sequential(db, shift, lines, tenders, subtotal, discount, total, name, lot) -> SaleResult:
    try:
        sale = _persist_sale(db, shift, lines, tenders, subtotal, discount, total, name, lot)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("complete_sale: error insertando la venta")
        raise

    warnings: List[PartialFailureWarning] = []
    for line in lines:
        try:
            _decrement_stock(db, sale, line, shift)
            db.commit()
        except Exception as exc:
            db.rollback()
            warnings.append(
                PartialFailureWarning("stock", f"Error actualizando stock de {line.product.name}", str(exc))
            )
    for tender in tenders:
        try:
            _append_ledger_entry(db, sale, tender, shift)
            db.commit()
        except Exception as exc:
            db.rollback()
            warnings.append(
                PartialFailureWarning(
                    "ledger",
                    f"La venta se registró, pero hubo un error al registrar el movimiento en caja ({tender.method} {tender.amount:.2f})",
                    str(exc),
                )
            )

    for warning in warnings:
        logger.warning("complete_sale: venta %s %s", sale.sale_number, warning)
    db.refresh(sale)
    return SaleResult(sale=sale, warnings=warnings)


def get_sale(db: Session, sale_id: int) -> Sale:
    sale = db.query(Sale).filter(Sale.id == sale_id).first()
    if not sale:
        raise NotFoundError(f"Venta {sale_id} no encontrada")
    return sale


def list_sales(
    db: Session,
    shift_id: Optional[int] = None,
    operator_id: Optional[int] = None,
    period: str = "today",
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[Sale]:
    query = db.query(Sale)
    if shift_id is not None:
        query = query.filter(Sale.shift_id == shift_id)
    if operator_id is not None:
        query = query.filter(Sale.user_id == operator_id)
    since, until = period_bounds(period, start, end)
    if since is not None:
        query = query.filter(Sale.created_at >= since)
    if until is not None:
        query = query.filter(Sale.created_at < until)
    return query.order_by(Sale.created_at.desc(), Sale.id.desc()).all()
