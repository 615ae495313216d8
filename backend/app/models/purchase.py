from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import relationship

from app.core.time_utils import utcnow
from app.models.base import Base


class PurchaseInvoice(Base):
    __tablename__ = "purchase_invoices"
    __table_args__ = (
        UniqueConstraint("invoice_number", name="uq_purchase_invoices_number"),
    )

    id = Column(Integer, primary_key=True, index=True)
    invoice_number = Column(String(50), nullable=False, index=True)
    supplier = Column(String(255), nullable=False)
    total = Column(Numeric(10, 2), nullable=False, default=0)
    paid_amount = Column(Numeric(10, 2), nullable=False, default=0)
    status = Column(String(20), nullable=False, default="pendiente")  # "pendiente" o "pagada"
    created_at = Column(DateTime, nullable=False, default=utcnow)

    items = relationship("PurchaseInvoiceItem", back_populates="invoice", cascade="all, delete-orphan")
    payments = relationship(
        "PurchasePayment", back_populates="invoice", cascade="all, delete-orphan", order_by="PurchasePayment.id"
    )


class PurchaseInvoiceItem(Base):
    __tablename__ = "purchase_invoice_items"

    id = Column(Integer, primary_key=True, index=True)
    invoice_id = Column(Integer, ForeignKey("purchase_invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)
    product_name = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    unit_cost = Column(Numeric(10, 2), nullable=False, default=0)
    subtotal = Column(Numeric(10, 2), nullable=False, default=0)

    invoice = relationship("PurchaseInvoice", back_populates="items")


class PurchasePayment(Base):
    __tablename__ = "purchase_payments"

    id = Column(Integer, primary_key=True, index=True)
    invoice_id = Column(Integer, ForeignKey("purchase_invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    cash_transaction_id = Column(Integer, ForeignKey("cash_transactions.id", ondelete="SET NULL"), nullable=True)
    amount = Column(Numeric(10, 2), nullable=False)
    payment_method = Column(String(50), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    invoice = relationship("PurchaseInvoice", back_populates="payments")
