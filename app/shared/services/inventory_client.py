# app/shared/services/inventory_client.py
"""
Cliente HTTP del servicio externo de productos / inventario.

Cada operación es una sola llamada con timeout propio. No hay reintentos
ni llave de idempotencia: si una llamada expira no se sabe si el servicio
remoto alcanzó a aplicar el cambio.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests
from fastapi import Request

from app.core.exceptions import InventoryServiceError, NotFoundError, StockError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InventoryClientConfig:
    base_url: str
    shared_secret: Optional[str] = None
    timeout_seconds: float = 5.0
    secret_header: str = "X-Service-Secret"

    @classmethod
    def from_settings(cls, settings) -> "InventoryClientConfig":
        return cls(
            base_url=settings.inventory_service_url,
            shared_secret=settings.inventory_service_secret,
            timeout_seconds=settings.inventory_timeout_seconds
        )


@dataclass(frozen=True)
class ProductInfo:
    product_id: str
    price: Decimal
    name: Optional[str]


class InventoryClient:
    """
    Operaciones remotas usadas por la reconciliación de stock:

    - decrement: reducir stock disponible
    - adjust: cambiar stock en un delta con signo (positivo = devolución)
    - get_product: precio y nombre actuales (solo lectura)
    """

    def __init__(self, config: InventoryClientConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()

    # ==================== OPERACIONES DE STOCK ====================

    def decrement(self, product_id: str, quantity: int) -> Dict[str, Any]:
        """Reducir el stock de un producto"""
        return self._post_stock_change(product_id, "decrement", quantity)

    def adjust(self, product_id: str, delta: int) -> Dict[str, Any]:
        """Ajustar el stock de un producto (delta positivo aumenta)"""
        return self._post_stock_change(product_id, "adjust", delta)

    # ==================== CONSULTA DE PRODUCTOS ====================

    def get_product(self, product_id: str) -> ProductInfo:
        """Obtener precio y nombre de un producto"""
        url = self._product_url(product_id)

        try:
            response = self.session.get(
                url,
                headers=self._headers(),
                timeout=self.config.timeout_seconds
            )
        except requests.Timeout:
            logger.warning(f"⏰ Timeout consultando producto {product_id}")
            raise InventoryServiceError(
                f"Tiempo de espera agotado consultando el producto {product_id}",
                status_code=504,
                product_id=product_id
            )
        except requests.RequestException as e:
            logger.warning(f"❌ Servicio de inventario no disponible consultando {product_id}: {e}")
            raise InventoryServiceError(
                f"Servicio de inventario no disponible: {e}",
                status_code=503,
                product_id=product_id
            )

        if response.status_code == 404:
            raise NotFoundError(f"Producto {product_id} no encontrado")
        if response.status_code >= 400:
            raise InventoryServiceError(
                self._error_message(response),
                upstream_status=response.status_code,
                product_id=product_id
            )

        body = self._json_body(response)
        try:
            price = Decimal(str(body.get("price", 0) or 0))
        except InvalidOperation:
            raise InventoryServiceError(
                f"Precio inválido para el producto {product_id}: {body.get('price')!r}",
                product_id=product_id
            )
        if not price.is_finite() or price < 0:
            raise InventoryServiceError(
                f"Precio inválido para el producto {product_id}: {body.get('price')!r}",
                product_id=product_id
            )

        return ProductInfo(product_id=product_id, price=price, name=body.get("name"))

    def close(self) -> None:
        """Cerrar el pool de conexiones de la sesión"""
        self.session.close()

    # ==================== HELPERS ====================

    def _post_stock_change(self, product_id: str, operation: str, quantity: int) -> Dict[str, Any]:
        url = f"{self._product_url(product_id)}/{operation}"
        logger.info(f"📦 {operation} producto={product_id} cantidad={quantity}")

        try:
            response = self.session.post(
                url,
                json={"quantity": quantity},
                headers=self._headers(),
                timeout=self.config.timeout_seconds
            )
        except requests.Timeout:
            logger.error(f"⏰ Timeout en {operation} producto={product_id} cantidad={quantity}")
            raise StockError(
                f"Tiempo de espera agotado en {operation} del producto {product_id}",
                status_code=504,
                product_id=product_id
            )
        except requests.RequestException as e:
            logger.error(f"❌ Error de red en {operation} producto={product_id}: {e}")
            raise StockError(
                f"Servicio de inventario no disponible: {e}",
                status_code=503,
                product_id=product_id
            )

        if response.status_code >= 400:
            message = self._error_message(response)
            logger.warning(
                f"❌ {operation} rechazado producto={product_id} "
                f"status={response.status_code}: {message}"
            )
            raise StockError(
                message,
                status_code=400 if response.status_code < 500 else 502,
                upstream_status=response.status_code,
                product_id=product_id
            )

        return self._json_body(response)

    def _product_url(self, product_id: str) -> str:
        return f"{self.config.base_url.rstrip('/')}/products/{quote(str(product_id), safe='')}"

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.config.shared_secret:
            headers[self.config.secret_header] = self.config.shared_secret
        return headers

    @staticmethod
    def _json_body(response: requests.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {"data": body}

    @classmethod
    def _error_message(cls, response: requests.Response) -> str:
        body = cls._json_body(response)
        message = body.get("detail") or body.get("error")
        if not message:
            message = response.text or f"Error del servicio de inventario ({response.status_code})"
        return str(message)


def get_inventory_client(request: Request) -> InventoryClient:
    """Dependencia FastAPI: cliente compartido creado en el arranque de la app"""
    return request.app.state.inventory_client
