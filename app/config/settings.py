from pydantic import Field
from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    # App Info
    app_name: str = "Ventas API"
    version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # Database
    database_url: str

    # Security
    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 480  # 8 horas
    allowed_origins: List[str] = ["http://localhost:3000"]

    # Microservicio de productos / inventario
    inventory_service_url: str = Field(
        default="http://localhost:8001",
        description="URL base del servicio de productos e inventario"
    )
    inventory_service_secret: Optional[str] = Field(
        default=None,
        description="Secreto compartido para llamadas servicio a servicio"
    )
    inventory_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout por llamada al servicio de inventario"
    )

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    class Config:
        env_file = ".env"
        case_sensitive = False

settings = Settings()
