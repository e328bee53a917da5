from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional
from datetime import date, datetime

# ==================== CLASE BASE PARA RESPUESTAS (Pydantic v2) ====================

class SalesBaseModel(BaseModel):
    """
    Clase base para todos los esquemas de respuesta,
    con configuración de Pydantic v2.
    """
    model_config = ConfigDict(from_attributes=True)

# ==================== REQUEST SCHEMAS ====================

class SaleWriteRequest(BaseModel):
    """
    Cuerpo para crear o reemplazar los items de una venta.

    Cada item se normaliza en el servicio; se aceptan varios nombres de
    campo (``productId``/``producto_id``, ``quantity``/``cantidad``...).
    """
    line_items: List[Any] = Field(
        ...,
        validation_alias=AliasChoices("lineItems", "line_items", "productos", "items"),
        description="Productos de la venta"
    )

# ==================== RESPONSE SCHEMAS ====================

class SaleItemResponse(SalesBaseModel):
    product_id: str
    product_name: Optional[str]
    quantity: int
    unit_price: float
    subtotal: float

class SaleResponse(SalesBaseModel):
    id: int
    seller_id: int
    total: float
    created_at: datetime
    updated_at: Optional[datetime]

    # Relacionados
    line_items: List[SaleItemResponse]

    # Información adicional
    seller_info: Dict[str, Any]

class StockChangeInfo(SalesBaseModel):
    product_id: str
    quantity: int
    operation: str

class SaleDeleteResponse(SalesBaseModel):
    success: bool
    sale_id: int
    message: str
    stock_changes: List[StockChangeInfo]

class SalesReportResponse(SalesBaseModel):
    success: bool
    start_date: date
    end_date: date
    sales: List[SaleResponse]
    total_amount: float
    count: int
    requested_by: Dict[str, Any]
