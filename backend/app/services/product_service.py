import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import ConflictError, ValidationError
from app.core.query_helpers import LIKE_ESCAPE, contains_pattern
from app.core.serialization_helpers import to_money
from app.models.product import Product
from app.services.inventory_service import get_product


logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("code", "name", "description", "category", "price", "cost", "stock", "min_stock", "active")


def search_products(
    db: Session,
    q: Optional[str] = None,
    category: Optional[str] = None,
    active: Optional[bool] = None,
    in_stock: Optional[bool] = None,
) -> List[Product]:
    query = db.query(Product)
    if q:
        qn = q.strip().lower()
        if qn:
            pattern = contains_pattern(qn)
            query = query.filter(
                or_(
                    func.lower(Product.name).like(pattern, escape=LIKE_ESCAPE),
                    func.lower(Product.code).like(pattern, escape=LIKE_ESCAPE),
                )
            )
    if category:
        query = query.filter(Product.category == category)
    if active is not None:
        query = query.filter(Product.active == active)
    if in_stock:
        query = query.filter(Product.stock > 0)
    return query.order_by(Product.name.asc()).all()


def _clean_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    values = {k: v for k, v in data.items() if k in EDITABLE_FIELDS}
    if "code" in values:
        values["code"] = (values["code"] or "").strip()
        if not values["code"]:
            raise ValidationError("El código del producto es obligatorio")
    if "name" in values:
        values["name"] = (values["name"] or "").strip()
        if not values["name"]:
            raise ValidationError("El nombre del producto es obligatorio")
    for money_field in ("price", "cost"):
        if money_field in values:
            values[money_field] = to_money(values[money_field])
            if values[money_field] < 0:
                raise ValidationError(f"{money_field} no puede ser negativo")
    for count_field in ("stock", "min_stock"):
        if count_field in values:
            values[count_field] = int(values[count_field] or 0)
            if values[count_field] < 0:
                raise ValidationError(f"{count_field} no puede ser negativo")
    return values


def _ensure_unique_code(db: Session, code: str, product_id: Optional[int] = None) -> None:
    query = db.query(Product).filter(Product.code == code)
    if product_id is not None:
        query = query.filter(Product.id != product_id)
    if query.first():
        raise ConflictError(f"Ya existe un producto con el código {code}")


def _commit(db: Session, product: Product) -> Product:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(f"Ya existe un producto con el código {product.code}")
    db.refresh(product)
    return product


def create_product(db: Session, data: Dict[str, Any]) -> Product:
    values = _clean_fields(data)
    if "code" not in values or "name" not in values:
        raise ValidationError("Código y nombre son obligatorios")
    _ensure_unique_code(db, values["code"])

    product = Product(**values)
    db.add(product)
    product = _commit(db, product)
    logger.info("create_product: %s (%s)", product.id, product.code)
    return product


def update_product(db: Session, product_id: int, data: Dict[str, Any]) -> Product:
    product = get_product(db, product_id)
    values = _clean_fields(data)
    if "code" in values:
        _ensure_unique_code(db, values["code"], product_id=product.id)
    for key, value in values.items():
        setattr(product, key, value)
    product = _commit(db, product)
    logger.info("update_product: %s campos=%s", product.id, sorted(values))
    return product
