# app/core/auth/dependencies.py
from typing import List, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.config.database import get_db
from app.core.exceptions import AuthorizationError
from app.shared.database.models import User
from .security import decode_access_token

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"}
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> User:
    """
    Usuario autenticado a partir del token Bearer.
    El rol se toma de la base de datos, no del token.
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise _unauthorized("Acceso no autorizado")

    payload = decode_access_token(credentials.credentials)
    if not payload or not payload.get("sub"):
        raise _unauthorized("Token inválido o expirado")

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise _unauthorized("Token inválido o expirado")

    user = db.query(User).filter(User.id == user_id).first()
    if not user or not user.is_active:
        raise _unauthorized("Usuario no encontrado o inactivo")

    return user


def require_roles(roles: List[str]):
    """Dependencia que exige que el usuario tenga alguno de los roles"""

    async def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise AuthorizationError(
                f"Acceso prohibido: se requiere rol {' o '.join(roles)}"
            )
        return current_user

    return role_checker
