from enum import Enum


class PaymentMethod(str, Enum):
    efectivo = "efectivo"
    transferencia = "transferencia"
    qr = "qr"
    expensas = "expensas"
    tarjeta = "tarjeta"


class TransactionType(str, Enum):
    income = "income"
    expense = "expense"


CASH_METHOD = PaymentMethod.efectivo.value

# Orden en que se muestran los saldos por método
LEDGER_METHODS = tuple(m.value for m in PaymentMethod)

# La tarjeta se acepta en movimientos manuales y pagos de compras, no en ventas
SALE_METHODS = (
    PaymentMethod.efectivo.value,
    PaymentMethod.transferencia.value,
    PaymentMethod.qr.value,
    PaymentMethod.expensas.value,
)

TRANSACTION_TYPES = tuple(t.value for t in TransactionType)

SALE_CATEGORY = "venta"
PURCHASE_CATEGORY = "compra"


def normalize_method(method: str) -> str:
    value = (method or "").strip().lower()
    if value == "expensa":
        return PaymentMethod.expensas.value
    return value
