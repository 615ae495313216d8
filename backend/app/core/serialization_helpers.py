"""
Helpers genéricos de serialización.
NO contiene lógica de negocio, solo utilidades de formato.
"""
from decimal import Decimal, ROUND_HALF_UP

MONEY_QUANT = Decimal("0.01")


def to_money(value) -> Decimal:
    """Convierte a Decimal con dos decimales (redondeo comercial)"""
    return Decimal(str(value or 0)).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def serialize_decimal(value):
    """Convierte Decimal a float con dos decimales para serialización JSON"""
    if value is None:
        return None
    return float(to_money(value))


def serialize_datetime(value):
    """Convierte datetime a string ISO para serialización JSON"""
    if value is None:
        return None
    return value.isoformat()
