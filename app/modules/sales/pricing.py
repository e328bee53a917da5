# app/modules/sales/pricing.py
"""
Precios y total de la venta.

A diferencia del stock, la consulta de precios no bloquea el guardado:
si falla, el item queda con precio 0 y se registra el problema.
"""
import logging
from dataclasses import replace
from decimal import Decimal
from typing import Iterable, List, Mapping, Optional

from app.core.exceptions import InventoryServiceError, NotFoundError
from app.shared.services.inventory_client import InventoryClient
from .normalizer import NormalizedItem

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class SalePricer:

    def __init__(self, client: InventoryClient):
        self.client = client

    def fill_prices(
        self,
        items: Iterable[NormalizedItem],
        cached: Optional[Mapping[str, NormalizedItem]] = None
    ) -> List[NormalizedItem]:
        """
        Completar precio y nombre de los items sin precio positivo.

        ``cached`` permite reutilizar el precio ya guardado en la venta
        para productos que siguen presentes tras una actualización.
        """
        cached = cached or {}
        priced = []

        for item in items:
            if item.unit_price and item.unit_price > 0:
                priced.append(item)
                continue

            previous = cached.get(item.product_id)
            if previous is not None and previous.unit_price and previous.unit_price > 0:
                priced.append(replace(
                    item,
                    unit_price=previous.unit_price,
                    product_name=item.product_name or previous.product_name
                ))
                continue

            try:
                product = self.client.get_product(item.product_id)
            except (InventoryServiceError, NotFoundError) as e:
                logger.warning(f"⚠️ Sin precio para producto {item.product_id}, se usa 0: {e.detail}")
                priced.append(replace(item, unit_price=ZERO))
                continue

            priced.append(replace(
                item,
                unit_price=product.price,
                product_name=item.product_name or product.name
            ))

        return priced


def compute_total(items: Iterable) -> Decimal:
    """Σ cantidad × precio unitario; los precios ausentes cuentan como 0"""
    total = ZERO
    for item in items:
        total += item.quantity * Decimal(item.unit_price or 0)
    return total
