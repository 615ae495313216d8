"""
Servicio de inventario: movimientos de stock por venta y por ingreso de mercadería.

Cada cambio de stock deja un InventoryMovement con el stock anterior y el nuevo.
"""
import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.core.errors import AuthorizationError, NotFoundError, ValidationError
from app.core.policy import AuthorizationPolicy
from app.core.query_helpers import LIKE_ESCAPE, contains_pattern
from app.core.time_utils import period_bounds
from app.models.inventory_movement import InventoryMovement
from app.models.product import Product
from app.models.shift import Shift
from app.models.user import User


logger = logging.getLogger(__name__)

SALE = "sale"
PURCHASE = "purchase"
MOVEMENT_TYPES = (SALE, PURCHASE)


def get_product(db: Session, product_id: int) -> Product:
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise NotFoundError(f"Producto {product_id} no encontrado")
    return product


def apply_stock_change(
    db: Session,
    product: Product,
    quantity: int,
    movement_type: str,
    user_name: str = "",
    shift_id: Optional[int] = None,
    supplier: str = "",
    reference: str = "",
    notes: str = "",
) -> InventoryMovement:
    """
    Suma `quantity` al stock (negativa para ventas) y registra el movimiento.
    NO hace commit - el caller decide el límite de la transacción.
    """
    previous = int(product.stock or 0)
    product.stock = previous + quantity
    movement = InventoryMovement(
        product_id=product.id,
        product_code=product.code,
        product_name=product.name,
        category=product.category or "",
        movement_type=movement_type,
        quantity=quantity,
        previous_stock=previous,
        new_stock=product.stock,
        supplier=supplier or "",
        reference=reference or "",
        user_name=user_name or "",
        shift_id=shift_id,
        notes=notes or "",
    )
    db.add(movement)
    db.flush()
    return movement


def receive_stock(
    db: Session,
    policy: AuthorizationPolicy,
    user: User,
    product_id: int,
    quantity: int,
    supplier: str = "",
    reference: str = "",
    notes: str = "",
    shift_id: Optional[int] = None,
    supervisor_passphrase: Optional[str] = None,
) -> InventoryMovement:
    """
    Ingresa mercadería a un producto ("Cargar Mercadería").

    Requiere un usuario con permiso 'receive_stock' o la clave de supervisor.

    Raises:
        AuthorizationError: Sin permiso ni clave de supervisor válida
        NotFoundError: Producto o turno inexistente
        ValidationError: Cantidad no positiva
    """
    if not policy.is_allowed(user, "receive_stock") and not policy.verify_supervisor(supervisor_passphrase):
        raise AuthorizationError("Contraseña incorrecta")
    if quantity is None or int(quantity) <= 0:
        raise ValidationError("La cantidad debe ser mayor a 0")

    product = get_product(db, product_id)
    if shift_id is not None and not db.query(Shift).filter(Shift.id == shift_id).first():
        raise NotFoundError(f"Turno {shift_id} no encontrado")

    movement = apply_stock_change(
        db,
        product,
        int(quantity),
        PURCHASE,
        user_name=user.full_name or user.username,
        shift_id=shift_id,
        supplier=supplier,
        reference=reference,
        notes=notes,
    )
    db.commit()
    db.refresh(movement)
    logger.info("receive_stock: producto %s +%s (stock %s)", product.id, quantity, movement.new_stock)
    return movement


def list_movements(
    db: Session,
    movement_type: Optional[str] = None,
    product: Optional[str] = None,
    supplier: Optional[str] = None,
    category: Optional[str] = None,
    period: str = "today",
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[InventoryMovement]:
    if movement_type and movement_type not in MOVEMENT_TYPES:
        raise ValidationError(f"Tipo de movimiento inválido: {movement_type}")

    query = db.query(InventoryMovement)
    if movement_type:
        query = query.filter(InventoryMovement.movement_type == movement_type)
    if product:
        needle = contains_pattern(product.strip().lower())
        query = query.filter(
            or_(
                func.lower(InventoryMovement.product_name).like(needle, escape=LIKE_ESCAPE),
                func.lower(InventoryMovement.product_code).like(needle, escape=LIKE_ESCAPE),
            )
        )
    if supplier:
        query = query.filter(
            func.lower(InventoryMovement.supplier).like(
                contains_pattern(supplier.strip().lower()), escape=LIKE_ESCAPE
            )
        )
    if category:
        query = query.filter(InventoryMovement.category == category)

    since, until = period_bounds(period, start, end)
    if since is not None:
        query = query.filter(InventoryMovement.created_at >= since)
    if until is not None:
        query = query.filter(InventoryMovement.created_at < until)

    return query.order_by(InventoryMovement.created_at.desc(), InventoryMovement.id.desc()).all()


def low_stock_products(db: Session) -> List[Product]:
    return (
        db.query(Product)
        .filter(Product.active == True, Product.stock <= Product.min_stock)  # noqa: E712
        .order_by(Product.stock.asc(), Product.name.asc())
        .all()
    )
