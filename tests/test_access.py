"""
Tests for `app/modules/sales/access.py`.

Administrators access every sale; other roles only their own. Existence
is checked before ownership.
"""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from app.core.exceptions import AuthorizationError, NotFoundError
from app.modules.sales.access import can_access_sale, ensure_sale_access, scope_seller_id

ADMIN = SimpleNamespace(id=1, role="administrador")
SELLER = SimpleNamespace(id=2, role="vendedor")
CONSULTANT = SimpleNamespace(id=3, role="consultor")
SALE = SimpleNamespace(id=10, seller_id=2)


def test_admin_and_owner_can_access() -> None:
    assert can_access_sale(ADMIN, SALE)
    assert can_access_sale(SELLER, SALE)
    assert not can_access_sale(CONSULTANT, SALE)


def test_foreign_sale_raises_authorization_error() -> None:
    other = SimpleNamespace(id=5, role="vendedor")

    with pytest.raises(AuthorizationError):
        ensure_sale_access(other, SALE, SALE.id)


def test_missing_sale_raises_not_found_even_for_non_admin() -> None:
    with pytest.raises(NotFoundError):
        ensure_sale_access(CONSULTANT, None, 99)


def test_ensure_sale_access_returns_sale() -> None:
    assert ensure_sale_access(ADMIN, SALE, SALE.id) is SALE


def test_query_scope() -> None:
    assert scope_seller_id(ADMIN) is None
    assert scope_seller_id(SELLER) == 2
