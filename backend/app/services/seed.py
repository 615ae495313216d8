"""
Datos de demostración del kiosco
"""
import logging
from decimal import Decimal

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.roles import Role
from app.core.security import hash_password
from app.models.product import Product
from app.models.user import User
from app.services.configuration_service import get_configuration


logger = logging.getLogger(__name__)

DEMO_PRODUCTS = [
    # (código, nombre, categoría, precio, costo, stock, stock mínimo)
    ("7790895000997", "Coca-Cola 500ml", "Bebida", "1200.00", "800.00", 24, 6),
    ("7790070411716", "Agua Mineral 500ml", "Bebida", "800.00", "450.00", 30, 6),
    ("7791813423522", "Gatorade 500ml", "Bebida", "1500.00", "950.00", 12, 4),
    ("7790580103522", "Alfajor Triple", "Comida", "900.00", "550.00", 40, 10),
    ("7790040872103", "Barra de Cereal", "Comida", "600.00", "350.00", 20, 5),
    ("DEP-0001", "Pelota de Pádel x3", "Artículos de Deporte", "9500.00", "6500.00", 5, 2),
    ("DEP-0002", "Grip para Paleta", "Artículos de Deporte", "2500.00", "1400.00", 10, 3),
]


def seed_demo(db: Session):
    if db.query(User).filter(User.username == "admin").first():
        logger.info("seed_demo: datos de demo ya cargados")
        return

    db.add(
        User(
            username="admin",
            hashed_password=hash_password(settings.demo_admin_password),
            full_name="Administrador",
            role=Role.admin.value,
        )
    )
    db.add(
        User(
            username="vendedor",
            hashed_password=hash_password(settings.demo_cashier_password),
            full_name="Vendedor Demo",
            role=Role.vendedor.value,
        )
    )
    for code, name, category, price, cost, stock, min_stock in DEMO_PRODUCTS:
        if db.query(Product).filter(Product.code == code).first():
            continue
        db.add(
            Product(
                code=code,
                name=name,
                category=category,
                price=Decimal(price),
                cost=Decimal(cost),
                stock=stock,
                min_stock=min_stock,
            )
        )
    db.commit()
    get_configuration(db)
    logger.info("seed_demo: usuarios, productos y configuración creados")
