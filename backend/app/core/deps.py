from typing import Callable, Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.policy import AuthorizationPolicy, default_policy
from app.core.security import decode_token
from app.models.user import User


_policy = default_policy()


def get_policy() -> AuthorizationPolicy:
    return _policy


def get_current_user(
    db: Session = Depends(get_db),
    authorization: Optional[str] = Header(None),
) -> User:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    token = authorization.split(" ", 1)[1]
    payload = decode_token(token)
    if not payload:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    user = db.query(User).filter(User.id == int(payload["sub"])).first()
    if not user or not user.active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return user


def require_action(action: str) -> Callable[..., User]:
    """Dependencia que exige que la política autorice la acción."""

    def _checker(
        user: User = Depends(get_current_user),
        policy: AuthorizationPolicy = Depends(get_policy),
    ) -> User:
        if not policy.is_allowed(user, action):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
        return user

    return _checker
