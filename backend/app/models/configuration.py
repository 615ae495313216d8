from sqlalchemy import Column, DateTime, Integer, String

from app.core.time_utils import utcnow
from app.models.base import Base


class Configuration(Base):
    """Datos del negocio para encabezados y tickets (registro único)."""

    __tablename__ = "configuration"

    id = Column(Integer, primary_key=True, index=True)
    business_name = Column(String(255), nullable=False, default="Mi Kiosco")
    address = Column(String(500), nullable=False, default="")
    phone = Column(String(50), nullable=False, default="")
    tax_id = Column(String(50), nullable=False, default="")
    currency = Column(String(10), nullable=False, default="$")
    receipt_message = Column(String(500), nullable=False, default="")
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
