"""
Servicio centralizado para generación de folios.
Genera números de venta y de factura de compra únicos usando FolioCounter.
"""
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from app.core.time_utils import local_tz, utcnow
from app.models.folio_counter import FolioCounter


PREFIXES = {
    "VENTA": "V",
    "COMPRA": "C",
}


def get_next_folio_seq(db: Session, tipo: str) -> int:
    """
    Obtiene el siguiente número de secuencia para un tipo de folio.
    Crea el contador si no existe.

    Usa with_for_update() para serializar la asignación en PostgreSQL
    (SQLite ignora el lock y ya serializa las escrituras).
    NO hace commit - el caller confirma junto con el registro que usa el folio.

    Args:
        db: Sesión de base de datos
        tipo: Tipo de folio ('VENTA', 'COMPRA')

    Returns:
        Número de secuencia asignado
    """
    counter = (
        db.query(FolioCounter)
        .filter(FolioCounter.tipo == tipo)
        .with_for_update()
        .first()
    )
    if not counter:
        counter = FolioCounter(tipo=tipo, next_seq=1)
        db.add(counter)
        db.flush()

    current_seq = counter.next_seq
    counter.next_seq = current_seq + 1
    db.flush()
    return current_seq


def generate_folio(db: Session, tipo: str, now: Optional[datetime] = None) -> str:
    """
    Genera un folio con formato {PREFIX}-{AAAAMMDD}-{SEQ:06d}.

    La fecha es la local del kiosco; la secuencia es global y monótona,
    por lo que el folio nunca se repite aunque cambie el día.

    Returns:
        Folio generado (ej: 'V-20261019-000001', 'C-20261019-000002')
    """
    if tipo not in PREFIXES:
        raise ValueError(f"Tipo de folio inválido: {tipo}. Debe ser uno de {', '.join(PREFIXES)}")

    stamp = now or utcnow()
    if stamp.tzinfo is None:
        # Las fechas sin zona se guardan en UTC
        stamp = stamp.replace(tzinfo=timezone.utc)
    local_day = stamp.astimezone(local_tz()).strftime("%Y%m%d")
    seq = get_next_folio_seq(db, tipo)
    return f"{PREFIXES[tipo]}-{local_day}-{str(seq).zfill(6)}"