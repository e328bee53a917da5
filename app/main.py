import logging
from fastapi import FastAPI
from contextlib import asynccontextmanager

from app.config.settings import settings
from app.config.database import Base, engine
from app.core.exceptions import register_exception_handlers
from app.core.middleware import setup_middleware
from app.api.v1.router import api_router
from app.shared.services.inventory_client import InventoryClient, InventoryClientConfig
from app.shared.database import models  # noqa: F401  registra las tablas en Base

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"🚀 {settings.app_name} starting...")
    logger.info(f"📍 Version: {settings.version}")
    logger.info(f"🌍 Environment: {'Development' if settings.debug else 'Production'}")
    logger.info(f"📦 Inventory service: {settings.inventory_service_url}")

    Base.metadata.create_all(bind=engine)
    app.state.inventory_client = InventoryClient(InventoryClientConfig.from_settings(settings))

    yield

    # Shutdown
    app.state.inventory_client.close()
    logger.info(f"🛑 {settings.app_name} shutting down...")

# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    description="API de gestión de ventas con reconciliación de stock",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan
)

# Setup middleware
setup_middleware(app)
register_exception_handlers(app)

# Include routers
app.include_router(api_router)

# Root endpoint
@app.get("/")
async def root():
    return {
        "message": f"{settings.app_name} - Gestión de Ventas",
        "version": settings.version,
        "status": "running",
        "docs": "/docs" if settings.debug else "Disabled in production",
        "api": "/api/v1"
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
