# app/core/exceptions.py
"""
Taxonomía de errores del dominio de ventas y su traducción a respuestas HTTP.

Los servicios lanzan estas excepciones; el handler registrado en la app
las convierte en ``{"detail": ..., "error": ...}`` con el status adecuado.
"""
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class SalesAppError(Exception):
    """Error base de la aplicación"""
    status_code: int = 500
    default_detail: str = "Error interno del servidor"

    def __init__(self, detail: Optional[str] = None, status_code: Optional[int] = None):
        self.detail = detail or self.default_detail
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.detail)


class ValidationError(SalesAppError):
    """Datos de entrada inválidos (producto, cantidad, rango de fechas)"""
    status_code = 400
    default_detail = "Datos inválidos"

    def __init__(self, detail: Optional[str] = None, field: Optional[str] = None):
        self.field = field
        if field and detail:
            detail = f"{field}: {detail}"
        super().__init__(detail)


class AuthorizationError(SalesAppError):
    status_code = 403
    default_detail = "No autorizado para realizar esta acción"


class NotFoundError(SalesAppError):
    status_code = 404
    default_detail = "Recurso no encontrado"


class InventoryServiceError(SalesAppError):
    """El servicio de inventario falló o no respondió"""
    status_code = 502
    default_detail = "Error comunicándose con el servicio de inventario"

    def __init__(
        self,
        detail: Optional[str] = None,
        status_code: Optional[int] = None,
        upstream_status: Optional[int] = None,
        product_id: Optional[str] = None
    ):
        self.upstream_status = upstream_status
        self.product_id = product_id
        super().__init__(detail, status_code)


class StockError(InventoryServiceError):
    """El servicio de inventario rechazó o no pudo aplicar un cambio de stock"""
    default_detail = "No fue posible actualizar el stock"


class RenderError(SalesAppError):
    status_code = 500
    default_detail = "Error generando el reporte"


def register_exception_handlers(app: FastAPI):
    """Registrar el handler de errores de dominio en la aplicación"""

    @app.exception_handler(SalesAppError)
    async def sales_app_error_handler(request: Request, exc: SalesAppError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} - {type(exc).__name__}: {exc.detail}")
        else:
            logger.info(f"{request.method} {request.url.path} - {type(exc).__name__}: {exc.detail}")

        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail, "error": type(exc).__name__}
        )
