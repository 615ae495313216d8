"""
Hash de contraseñas (passlib/bcrypt) y tokens JWT de sesión.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from passlib.context import CryptContext

from app.core.config import settings


password_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=12,
)

ACCESS = "access"
REFRESH = "refresh"


def hash_password(password: str) -> str:
    return password_context.hash(password)


def verify_password(password: str, hashed_password: Optional[str]) -> bool:
    if not password or not hashed_password:
        return False
    return password_context.verify(password, hashed_password)


def _encode(subject: str, token_type: str, expires_minutes: int) -> str:
    issued = datetime.now(timezone.utc)
    payload: Dict[str, Any] = {
        "sub": subject,
        "type": token_type,
        "iat": issued,
        "exp": issued + timedelta(minutes=expires_minutes),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def issue_tokens(user_id: int) -> Dict[str, str]:
    """Genera el par access/refresh para un usuario."""
    subject = str(user_id)
    return {
        "access_token": _encode(subject, ACCESS, settings.access_token_expire_minutes),
        "refresh_token": _encode(subject, REFRESH, settings.refresh_token_expire_minutes),
        "token_type": "bearer",
    }


def decode_token(token: str, expected_type: str = ACCESS) -> Optional[Dict[str, Any]]:
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except jwt.PyJWTError:
        return None
    if payload.get("type") != expected_type:
        return None
    return payload
