"""
Helpers de fecha y hora.

Las fechas se guardan en UTC sin tzinfo; los periodos de consulta
(hoy, semana, mes) se calculan en la zona horaria local del kiosco.
"""
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from app.core.config import settings
from app.core.errors import ValidationError


PERIODS = ("today", "week", "month", "all", "custom")


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def local_tz() -> ZoneInfo:
    return ZoneInfo(settings.timezone)


def _to_utc_naive(value: datetime) -> datetime:
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def period_bounds(
    period: str,
    start: Optional[date] = None,
    end: Optional[date] = None,
    now: Optional[datetime] = None,
    tz: Optional[ZoneInfo] = None,
) -> Tuple[Optional[datetime], Optional[datetime]]:
    """
    Devuelve (desde, hasta) en UTC naive para un periodo de consulta.

    Args:
        period: 'today', 'week' (desde el lunes), 'month', 'all' o 'custom'
        start: Fecha inicial para 'custom'
        end: Fecha final para 'custom' (se incluye el día completo)
        now: Instante de referencia con tzinfo; por defecto el actual
        tz: Zona horaria local; por defecto la de configuración

    Returns:
        Tupla (desde, hasta). None significa sin límite; 'hasta' es exclusivo.

    Raises:
        ValidationError: Periodo desconocido o rango custom inválido
    """
    tz = tz or local_tz()
    local_now = (now or datetime.now(timezone.utc)).astimezone(tz)
    midnight = datetime.combine(local_now.date(), time.min, tzinfo=tz)

    if period == "all":
        return None, None
    if period == "today":
        return _to_utc_naive(midnight), None
    if period == "week":
        monday = midnight - timedelta(days=local_now.weekday())
        return _to_utc_naive(monday), None
    if period == "month":
        first = midnight.replace(day=1)
        return _to_utc_naive(first), None
    if period == "custom":
        if start is None or end is None:
            raise ValidationError("El periodo personalizado requiere fecha desde y hasta")
        if start > end:
            raise ValidationError("La fecha desde debe ser anterior o igual a la fecha hasta")
        since = datetime.combine(start, time.min, tzinfo=tz)
        until = datetime.combine(end + timedelta(days=1), time.min, tzinfo=tz)
        return _to_utc_naive(since), _to_utc_naive(until)

    raise ValidationError(f"Periodo inválido: {period}. Debe ser uno de {', '.join(PERIODS)}")
