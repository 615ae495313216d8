from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String

from app.core.time_utils import utcnow
from app.models.base import Base


class CashTransaction(Base):
    """Movimiento de caja. Solo se inserta; nunca se edita ni se borra."""

    __tablename__ = "cash_transactions"

    id = Column(Integer, primary_key=True, index=True)
    shift_id = Column(Integer, ForeignKey("shifts.id", ondelete="RESTRICT"), nullable=False, index=True)
    type = Column(String(20), nullable=False, index=True)  # "income" o "expense"
    category = Column(String(100), nullable=False, default="")
    # Siempre positivo; el sentido lo da `type`
    amount = Column(Numeric(10, 2), nullable=False)
    payment_method = Column(String(50), nullable=False, index=True)
    description = Column(String(500), nullable=False, default="")
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
