from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from app.core.time_utils import utcnow
from app.models.base import Base


class InventoryMovement(Base):
    __tablename__ = "inventory_movements"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)
    product_code = Column(String(100), nullable=False, default="")
    product_name = Column(String(255), nullable=False, default="")
    category = Column(String(100), nullable=False, default="")

    # Movement type: "sale" o "purchase"
    movement_type = Column(String(20), nullable=False, index=True)

    # Quantity change (negative for sales)
    quantity = Column(Integer, nullable=False)
    previous_stock = Column(Integer, nullable=False)
    new_stock = Column(Integer, nullable=False)

    supplier = Column(String(255), nullable=False, default="")
    reference = Column(String(255), nullable=False, default="")
    user_name = Column(String(255), nullable=False, default="")
    shift_id = Column(Integer, ForeignKey("shifts.id", ondelete="SET NULL"), nullable=True, index=True)
    notes = Column(String(500), nullable=False, default="")

    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
