from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, condecimal
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.deps import require_action
from app.core.serialization_helpers import serialize_datetime, serialize_decimal
from app.models.purchase import PurchaseInvoice, PurchasePayment
from app.models.user import User
from app.services import purchase_service


router = APIRouter()


class PurchaseItemIn(BaseModel):
    product_id: int
    quantity: int
    unit_cost: condecimal(max_digits=10, decimal_places=2)


class PurchaseCreate(BaseModel):
    supplier: str
    items: List[PurchaseItemIn]


class PurchasePaymentIn(BaseModel):
    shift_id: int
    amount: condecimal(max_digits=10, decimal_places=2)
    payment_method: str = "efectivo"


def serialize_payment(payment: PurchasePayment) -> dict:
    return {
        "id": payment.id,
        "invoice_id": payment.invoice_id,
        "cash_transaction_id": payment.cash_transaction_id,
        "amount": serialize_decimal(payment.amount),
        "payment_method": payment.payment_method,
        "created_at": serialize_datetime(payment.created_at),
    }


def serialize_invoice(invoice: PurchaseInvoice) -> dict:
    return {
        "id": invoice.id,
        "invoice_number": invoice.invoice_number,
        "supplier": invoice.supplier,
        "total": serialize_decimal(invoice.total),
        "paid_amount": serialize_decimal(invoice.paid_amount),
        "remaining": serialize_decimal(purchase_service.remaining_amount(invoice)),
        "status": invoice.status,
        "created_at": serialize_datetime(invoice.created_at),
        "items": [
            {
                "product_id": item.product_id,
                "product_name": item.product_name,
                "quantity": item.quantity,
                "unit_cost": serialize_decimal(item.unit_cost),
                "subtotal": serialize_decimal(item.subtotal),
            }
            for item in invoice.items
        ],
        "payments": [serialize_payment(p) for p in invoice.payments],
    }


@router.post("/")
def create_purchase(
    data: PurchaseCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_action("manage_purchases")),
):
    invoice = purchase_service.create_invoice(
        db,
        supplier=data.supplier,
        items=[item.model_dump() for item in data.items],
        user_name=user.full_name or user.username,
    )
    return serialize_invoice(invoice)


@router.get("/")
def list_purchases(
    db: Session = Depends(get_db),
    user: User = Depends(require_action("manage_purchases")),
    status: Optional[str] = Query(None, description="pendiente o pagada"),
    supplier: Optional[str] = Query(None),
):
    return [serialize_invoice(i) for i in purchase_service.list_invoices(db, status=status, supplier=supplier)]


@router.get("/{invoice_id}")
def get_purchase(
    invoice_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_action("manage_purchases")),
):
    return serialize_invoice(purchase_service.get_invoice(db, invoice_id))


@router.post("/{invoice_id}/payments")
def pay_purchase(
    invoice_id: int,
    data: PurchasePaymentIn,
    db: Session = Depends(get_db),
    user: User = Depends(require_action("manage_purchases")),
):
    payment = purchase_service.register_payment(
        db,
        invoice_id=invoice_id,
        shift_id=data.shift_id,
        amount=data.amount,
        payment_method=data.payment_method,
    )
    return serialize_payment(payment)
