from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, condecimal
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.deps import get_current_user, require_action
from app.core.serialization_helpers import serialize_datetime, serialize_decimal
from app.models.product import Product
from app.models.user import User
from app.services import product_service
from app.services.inventory_service import low_stock_products


router = APIRouter()


class ProductBase(BaseModel):
    code: str
    name: str
    description: Optional[str] = None
    category: Optional[str] = None  # "Bebida", "Comida", "Artículos de Deporte"
    price: condecimal(max_digits=10, decimal_places=2) = 0
    cost: condecimal(max_digits=10, decimal_places=2) = 0
    stock: int = 0
    min_stock: int = 0
    active: bool = True


class ProductUpdate(BaseModel):
    code: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    price: Optional[condecimal(max_digits=10, decimal_places=2)] = None
    cost: Optional[condecimal(max_digits=10, decimal_places=2)] = None
    min_stock: Optional[int] = None
    active: Optional[bool] = None


def serialize_product(product: Product) -> dict:
    return {
        "id": product.id,
        "code": product.code,
        "name": product.name,
        "description": product.description,
        "category": product.category,
        "price": serialize_decimal(product.price),
        "cost": serialize_decimal(product.cost),
        "stock": product.stock,
        "min_stock": product.min_stock,
        "active": product.active,
        "created_at": serialize_datetime(product.created_at),
        "updated_at": serialize_datetime(product.updated_at),
    }


@router.get("/")
def list_products(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    q: Optional[str] = Query(None, description="Buscar por nombre o código"),
    category: Optional[str] = Query(None),
    active: Optional[bool] = Query(None, description="Filtrar por estado"),
    in_stock: Optional[bool] = Query(None, description="Solo productos con stock"),
) -> List[dict]:
    logging.getLogger(__name__).info("list_products q=%s category=%s", q, category)
    products = product_service.search_products(db, q=q, category=category, active=active, in_stock=in_stock)
    return [serialize_product(p) for p in products]


@router.get("/low-stock")
def low_stock(db: Session = Depends(get_db), user: User = Depends(get_current_user)) -> List[dict]:
    return [serialize_product(p) for p in low_stock_products(db)]


@router.post("/")
def create_product(
    data: ProductBase,
    db: Session = Depends(get_db),
    user: User = Depends(require_action("manage_products")),
):
    return serialize_product(product_service.create_product(db, data.model_dump()))


@router.put("/{product_id}")
def update_product(
    product_id: int,
    data: ProductUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_action("manage_products")),
):
    product = product_service.update_product(db, product_id, data.model_dump(exclude_unset=True))
    return serialize_product(product)
