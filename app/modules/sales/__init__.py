# app/modules/sales/__init__.py
"""
Módulo de Ventas

- Registro, modificación y eliminación de ventas con reconciliación de
  stock contra el servicio externo de inventario
- Consulta de ventas con control de acceso por rol
- Reportes por rango de fechas (JSON y PDF)

Arquitectura:
- router.py: Endpoints FastAPI
- service.py: Lógica de negocio
- repository.py: Acceso a datos
- schemas.py: Modelos Pydantic de request/response
- normalizer.py / reconciliation.py / pricing.py / access.py / reports.py: reglas del dominio
"""

from .router import router as sales_router
from .service import SalesService
from .repository import SalesRepository

__all__ = [
    "sales_router",
    "SalesService",
    "SalesRepository"
]
