from datetime import datetime, timedelta, timezone

import pytest

from app.core.folio_service import generate_folio


def test_folio_uses_local_day_for_naive_utc(db):
    # 02:30 UTC del 21/10 son las 23:30 del 20/10 en Buenos Aires
    assert generate_folio(db, "VENTA", now=datetime(2026, 10, 21, 2, 30)) == "V-20261020-000001"


def test_folio_converts_aware_datetimes(db):
    # 23:00 en UTC-5 del 19/10 son las 01:00 del 20/10 en Buenos Aires
    stamp = datetime(2026, 10, 19, 23, 0, tzinfo=timezone(timedelta(hours=-5)))
    assert generate_folio(db, "VENTA", now=stamp) == "V-20261020-000001"

    local = datetime(2026, 10, 19, 23, 59, tzinfo=timezone(timedelta(hours=-3)))
    assert generate_folio(db, "COMPRA", now=local) == "C-20261019-000001"


def test_folio_sequence_is_monotonic(db):
    now = datetime(2026, 10, 19, 15, 0)
    folios = [generate_folio(db, "VENTA", now=now) for _ in range(3)]
    assert [f[-6:] for f in folios] == ["000001", "000002", "000003"]
    with pytest.raises(ValueError):
        generate_folio(db, "ticket", now=now)
