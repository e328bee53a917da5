# app/modules/sales/router.py
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session
from typing import List
from datetime import date

from app.config.database import get_db
from app.core.auth.dependencies import require_roles
from app.shared.database.models import User
from app.shared.services.inventory_client import InventoryClient, get_inventory_client
from .access import ALL_ROLES, SALE_WRITER_ROLES
from .reports import ReportRenderer, get_report_renderer
from .service import SalesService
from .schemas import (
    SaleWriteRequest, SaleResponse, SaleDeleteResponse, SalesReportResponse
)

router = APIRouter(prefix="/sales", tags=["Sales"])

# ==================== REGISTRO DE VENTAS ====================

@router.post("", response_model=SaleResponse, status_code=status.HTTP_201_CREATED)
async def create_sale(
    sale_data: SaleWriteRequest,
    current_user: User = Depends(require_roles(SALE_WRITER_ROLES)),
    db: Session = Depends(get_db),
    inventory: InventoryClient = Depends(get_inventory_client)
):
    """
    Registrar una venta

    - Descuenta el stock de cada producto en el servicio de inventario
    - Si algún descuento falla, devuelve el stock ya descontado y no guarda la venta
    - El total se calcula con los precios del servicio de productos
    """
    service = SalesService(db, inventory)
    return await service.create_sale(sale_data.line_items, current_user)

@router.get("", response_model=List[SaleResponse])
async def list_sales(
    current_user: User = Depends(require_roles(ALL_ROLES)),
    db: Session = Depends(get_db),
    inventory: InventoryClient = Depends(get_inventory_client)
):
    """
    Obtener ventas
    - Administrador: todas las ventas
    - Otros roles: solo las propias
    """
    service = SalesService(db, inventory)
    return await service.list_sales(current_user)

# ==================== REPORTES ====================

@router.get("/report", response_model=SalesReportResponse)
async def get_sales_report(
    start_date: date = Query(..., description="Fecha inicio (inclusive)"),
    end_date: date = Query(..., description="Fecha fin (inclusive)"),
    current_user: User = Depends(require_roles(ALL_ROLES)),
    db: Session = Depends(get_db),
    inventory: InventoryClient = Depends(get_inventory_client)
):
    """
    Reporte de ventas por rango de fechas con total y cantidad
    """
    service = SalesService(db, inventory)
    return await service.get_sales_report(start_date, end_date, current_user)

@router.get("/report/pdf")
async def get_sales_report_pdf(
    start_date: date = Query(..., description="Fecha inicio (inclusive)"),
    end_date: date = Query(..., description="Fecha fin (inclusive)"),
    current_user: User = Depends(require_roles(ALL_ROLES)),
    db: Session = Depends(get_db),
    inventory: InventoryClient = Depends(get_inventory_client),
    renderer: ReportRenderer = Depends(get_report_renderer)
):
    """
    Reporte de ventas en PDF
    """
    service = SalesService(db, inventory, renderer)
    content = await service.render_sales_report(start_date, end_date, current_user)

    filename = f"reporte_ventas_{start_date.isoformat()}_{end_date.isoformat()}.pdf"
    return Response(
        content=content,
        media_type=renderer.media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )

# ==================== VENTA INDIVIDUAL ====================

@router.get("/{sale_id}", response_model=SaleResponse)
async def get_sale(
    sale_id: int,
    current_user: User = Depends(require_roles(ALL_ROLES)),
    db: Session = Depends(get_db),
    inventory: InventoryClient = Depends(get_inventory_client)
):
    """
    Obtener una venta. Solo el administrador o el vendedor que la registró.
    """
    service = SalesService(db, inventory)
    return await service.get_sale(sale_id, current_user)

@router.put("/{sale_id}", response_model=SaleResponse)
async def update_sale(
    sale_id: int,
    sale_data: SaleWriteRequest,
    current_user: User = Depends(require_roles(SALE_WRITER_ROLES)),
    db: Session = Depends(get_db),
    inventory: InventoryClient = Depends(get_inventory_client)
):
    """
    Reemplazar los productos de una venta

    Solo se aplica al inventario la diferencia entre los productos
    actuales y los nuevos.
    """
    service = SalesService(db, inventory)
    return await service.update_sale(sale_id, sale_data.line_items, current_user)

@router.delete("/{sale_id}", response_model=SaleDeleteResponse)
async def delete_sale(
    sale_id: int,
    current_user: User = Depends(require_roles(SALE_WRITER_ROLES)),
    db: Session = Depends(get_db),
    inventory: InventoryClient = Depends(get_inventory_client)
):
    """
    Eliminar una venta devolviendo su stock al inventario
    """
    service = SalesService(db, inventory)
    return await service.delete_sale(sale_id, current_user)
