# app/modules/sales/access.py
"""Reglas de acceso a ventas: administrador o vendedor dueño de la venta"""
from typing import Any, Optional

from app.core.exceptions import AuthorizationError, NotFoundError

ADMIN_ROLE = "administrador"
SELLER_ROLE = "vendedor"
CONSULTANT_ROLE = "consultor"

ALL_ROLES = [ADMIN_ROLE, SELLER_ROLE, CONSULTANT_ROLE]
SALE_WRITER_ROLES = [SELLER_ROLE, ADMIN_ROLE]


def is_administrator(user: Any) -> bool:
    return getattr(user, "role", None) == ADMIN_ROLE


def can_access_sale(user: Any, sale: Any) -> bool:
    if is_administrator(user):
        return True
    return sale.seller_id == user.id


def ensure_sale_access(user: Any, sale: Optional[Any], sale_id: int, action: str = "ver"):
    """
    Validar acceso a una venta. La existencia se verifica primero.

    Raises:
        NotFoundError: la venta no existe
        AuthorizationError: la venta existe pero no pertenece al usuario
    """
    if sale is None:
        raise NotFoundError(f"Venta {sale_id} no encontrada")
    if not can_access_sale(user, sale):
        raise AuthorizationError(f"No autorizado para {action} esta venta")
    return sale


def scope_seller_id(user: Any) -> Optional[int]:
    """Vendedor por el que se filtran las consultas (None = todas)"""
    return None if is_administrator(user) else user.id
