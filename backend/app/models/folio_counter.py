from sqlalchemy import Column, Integer, String, UniqueConstraint

from app.models.base import Base


class FolioCounter(Base):
    __tablename__ = "folio_counters"
    __table_args__ = (
        UniqueConstraint("tipo", name="uq_folio_counters_tipo"),
    )

    id = Column(Integer, primary_key=True, index=True)
    # tipo: 'VENTA' | 'COMPRA'
    tipo = Column(String(20), nullable=False, index=True)
    next_seq = Column(Integer, nullable=False, default=1)
