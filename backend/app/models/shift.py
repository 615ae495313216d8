from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String

from app.core.time_utils import utcnow
from app.models.base import Base


class Shift(Base):
    __tablename__ = "shifts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    user_name = Column(String(255), nullable=False, default="")
    start_date = Column(DateTime, nullable=False, default=utcnow)
    end_date = Column(DateTime, nullable=True)
    opening_cash = Column(Numeric(10, 2), nullable=False, default=0)
    closing_cash = Column(Numeric(10, 2), nullable=True)
    # Totales cacheados al cerrar el turno
    total_sales = Column(Numeric(10, 2), nullable=False, default=0)
    total_expenses = Column(Numeric(10, 2), nullable=False, default=0)
    active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
