"""
Alta, edición y baja de operadores del kiosco.

Los usuarios no se borran: los turnos y ventas guardan su id, así que la
baja los deja inactivos y sin acceso.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.core.roles import Role
from app.core.security import hash_password
from app.models.user import User


logger = logging.getLogger(__name__)

ROLES = [r.value for r in Role]


def _clean_username(username: Optional[str]) -> str:
    value = (username or "").strip()
    if not value:
        raise ValidationError("El usuario es obligatorio")
    return value


def _check_role(role: str) -> str:
    if role not in ROLES:
        raise ValidationError(f"Rol inválido: {role}. Debe ser uno de {', '.join(ROLES)}")
    return role


def _check_password(password: Optional[str]) -> str:
    if not password:
        raise ValidationError("La contraseña es obligatoria")
    return password


def _ensure_unique_username(db: Session, username: str, exclude_id: Optional[int] = None) -> None:
    query = db.query(User).filter(User.username == username)
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    if query.first():
        raise ConflictError(f"El usuario '{username}' ya existe")


def get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError(f"Usuario {user_id} no encontrado")
    return user


def list_users(db: Session, active: Optional[bool] = None) -> List[User]:
    query = db.query(User)
    if active is not None:
        query = query.filter(User.active == active)
    return query.order_by(User.username.asc()).all()


def create_user(db: Session, username: str, password: str, full_name: str = "", role: str = Role.vendedor.value) -> User:
    """
    Crea un operador con la contraseña hasheada.

    Raises:
        ValidationError: Usuario, contraseña o rol inválidos
        ConflictError: El nombre de usuario ya existe
    """
    name = _clean_username(username)
    _ensure_unique_username(db, name)
    user = User(
        username=name,
        hashed_password=hash_password(_check_password(password)),
        full_name=(full_name or "").strip(),
        role=_check_role(role),
        active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("create_user: usuario %s (%s) creado con rol %s", user.id, user.username, user.role)
    return user


def update_user(db: Session, user_id: int, fields: Dict[str, Any], current_user: User) -> User:
    """
    Actualiza usuario, nombre, rol, contraseña o estado.

    Se valida todo antes de modificar. Un administrador no puede quitarse
    su propio rol ni desactivarse.
    """
    user = get_user(db, user_id)
    changes: Dict[str, Any] = {}

    if fields.get("username") is not None:
        changes["username"] = _clean_username(fields["username"])
        _ensure_unique_username(db, changes["username"], exclude_id=user.id)
    if fields.get("full_name") is not None:
        changes["full_name"] = fields["full_name"].strip()
    if fields.get("role") is not None:
        changes["role"] = _check_role(fields["role"])
        if user.id == current_user.id and changes["role"] != user.role:
            raise ValidationError("No podés cambiar tu propio rol")
    if fields.get("password"):
        changes["hashed_password"] = hash_password(fields["password"])
    if fields.get("active") is not None:
        if user.id == current_user.id and not fields["active"]:
            raise ValidationError("No podés desactivar tu propio usuario")
        changes["active"] = fields["active"]

    for name, value in changes.items():
        setattr(user, name, value)
    db.commit()
    db.refresh(user)
    logger.info("update_user: usuario %s actualizado (%s)", user.id, sorted(changes))
    return user


def deactivate_user(db: Session, user_id: int, current_user: User) -> User:
    return update_user(db, user_id, {"active": False}, current_user)
