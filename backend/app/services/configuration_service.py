from typing import Any, Dict

from sqlalchemy.orm import Session

from app.models.configuration import Configuration


FIELDS = ("business_name", "address", "phone", "tax_id", "currency", "receipt_message")


def get_configuration(db: Session) -> Configuration:
    """Devuelve el registro único de configuración, creándolo si falta."""
    config = db.query(Configuration).order_by(Configuration.id.asc()).first()
    if not config:
        config = Configuration()
        db.add(config)
        db.commit()
        db.refresh(config)
    return config


def update_configuration(db: Session, data: Dict[str, Any]) -> Configuration:
    config = get_configuration(db)
    for key in FIELDS:
        if key in data and data[key] is not None:
            setattr(config, key, str(data[key]).strip())
    db.commit()
    db.refresh(config)
    return config
