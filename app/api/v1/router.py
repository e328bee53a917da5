# app/api/v1/router.py
from fastapi import APIRouter

from app.config.settings import settings
from app.modules.sales import sales_router

# Crear router principal de la API v1
api_router = APIRouter(prefix="/api/v1")

# ==================== MÓDULOS ====================

api_router.include_router(sales_router)

# ==================== ENDPOINTS RAÍZ ====================

@api_router.get("/")
async def api_root():
    """Root endpoint de la API"""
    return {
        "message": f"{settings.app_name} v1",
        "version": settings.version,
        "status": "active",
        "available_endpoints": {
            "sales": "/api/v1/sales",
            "reports": "/api/v1/sales/report",
            "reports_pdf": "/api/v1/sales/report/pdf"
        }
    }

@api_router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.version,
        "inventory_service": settings.inventory_service_url
    }
