"""
Política de autenticación y autorización.

Las rutas reciben la política por inyección (deps.get_policy), de modo que
puede reemplazarse con app.dependency_overrides sin tocar los servicios.
"""
from abc import ABC, abstractmethod
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.roles import ADMIN_ROLES
from app.core.security import verify_password
from app.models.user import User


# Acciones protegidas y roles habilitados para cada una
ACTION_ROLES = {
    "manage_products": ADMIN_ROLES,
    "manage_configuration": ADMIN_ROLES,
    "receive_stock": ADMIN_ROLES,
    "manage_purchases": ADMIN_ROLES,
    "view_all_shifts": ADMIN_ROLES,
    "manage_users": ADMIN_ROLES,
}


class AuthorizationPolicy(ABC):
    @abstractmethod
    def authenticate(self, db: Session, username: str, password: str) -> Optional[User]:
        """Devuelve el usuario activo si las credenciales son válidas."""

    @abstractmethod
    def is_allowed(self, user: User, action: str) -> bool:
        """Indica si el usuario puede ejecutar la acción."""

    @abstractmethod
    def verify_supervisor(self, passphrase: Optional[str]) -> bool:
        """Valida la clave de supervisor que habilita acciones puntuales."""


class RoleBasedPolicy(AuthorizationPolicy):
    def __init__(self, supervisor_passphrase_hash: Optional[str] = None):
        self.supervisor_passphrase_hash = supervisor_passphrase_hash

    def authenticate(self, db: Session, username: str, password: str) -> Optional[User]:
        user = (
            db.query(User)
            .filter(User.username == (username or "").strip(), User.active == True)  # noqa: E712
            .first()
        )
        if not user or not verify_password(password, user.hashed_password):
            return None
        return user

    def is_allowed(self, user: User, action: str) -> bool:
        roles = ACTION_ROLES.get(action)
        if roles is None:
            # Acciones no listadas: cualquier usuario activo
            return bool(user.active)
        return user.active and user.role in {r.value for r in roles}

    def verify_supervisor(self, passphrase: Optional[str]) -> bool:
        return verify_password(passphrase or "", self.supervisor_passphrase_hash)


def default_policy() -> AuthorizationPolicy:
    return RoleBasedPolicy(settings.supervisor_passphrase_hash)