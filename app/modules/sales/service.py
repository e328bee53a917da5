# app/modules/sales/service.py
import asyncio
import logging
from datetime import date
from functools import partial
from typing import Any, Callable, Dict, List, Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import NotFoundError, SalesAppError
from app.shared.database.models import Sale, User
from app.shared.services.inventory_client import InventoryClient
from .repository import SalesRepository
from .access import ensure_sale_access, scope_seller_id
from .normalizer import NormalizedItem, merge_items, normalize_items
from .pricing import SalePricer, compute_total
from .reconciliation import ReconciliationResult, StockReconciler, describe_deltas
from .reports import ReportRenderer, PdfReportRenderer, build_report, render_report, report_window

logger = logging.getLogger(__name__)

class SalesService:
    """
    Servicio principal de ventas.

    Toda operación que modifica una venta sigue el mismo orden:
    acceso → normalización → reconciliación de stock → persistencia.
    Si la persistencia falla después de reconciliar, los cambios de
    stock se compensan antes de propagar el error.
    """

    def __init__(
        self,
        db: Session,
        inventory_client: InventoryClient,
        renderer: Optional[ReportRenderer] = None
    ):
        self.db = db
        self.repository = SalesRepository(db)
        self.reconciler = StockReconciler(inventory_client)
        self.pricer = SalePricer(inventory_client)
        self.renderer = renderer or PdfReportRenderer()

    # ==================== CREAR VENTA ====================

    async def create_sale(self, line_items: List[Any], current_user: User) -> Dict[str, Any]:
        """
        Registrar una venta: descuenta stock remoto y guarda la venta con
        su total calculado.
        """
        items = merge_items(normalize_items(line_items))

        seller = self.repository.get_user_by_id(current_user.id)
        if not seller:
            raise NotFoundError("Vendedor no encontrado")

        reconciliation = await self._run_blocking(self.reconciler.reconcile_create, items)

        def persist() -> Sale:
            priced = self.pricer.fill_prices(items)
            return self.repository.create_sale(
                seller_id=seller.id,
                items=priced,
                total=compute_total(priced)
            )

        sale = await self._run_blocking(self._persist_or_compensate, reconciliation, persist)
        logger.info(f"✅ Venta {sale.id} registrada por usuario {seller.id} - total {sale.total}")

        return self._serialize_sale(sale)

    # ==================== ACTUALIZAR VENTA ====================

    async def update_sale(self, sale_id: int, line_items: List[Any], current_user: User) -> Dict[str, Any]:
        """
        Reemplazar los items de una venta aplicando solo la diferencia
        de stock entre los items actuales y los nuevos.
        """
        sale = ensure_sale_access(
            current_user, self.repository.get_sale_by_id(sale_id), sale_id, "modificar"
        )
        new_items = merge_items(normalize_items(line_items))
        old_items = self._snapshot_items(sale)

        reconciliation = await self._run_blocking(
            self.reconciler.reconcile_update, old_items, new_items
        )
        cached = {item.product_id: item for item in old_items}

        def persist() -> Sale:
            priced = self.pricer.fill_prices(new_items, cached=cached)
            return self.repository.replace_sale_items(sale, priced, compute_total(priced))

        sale = await self._run_blocking(self._persist_or_compensate, reconciliation, persist)
        logger.info(
            f"✅ Venta {sale.id} actualizada por usuario {current_user.id} - "
            f"{len(reconciliation.applied)} cambio(s) de stock"
        )

        return self._serialize_sale(sale)

    # ==================== ELIMINAR VENTA ====================

    async def delete_sale(self, sale_id: int, current_user: User) -> Dict[str, Any]:
        """
        Eliminar una venta devolviendo todo su stock al inventario
        """
        sale = ensure_sale_access(
            current_user, self.repository.get_sale_by_id(sale_id), sale_id, "eliminar"
        )

        reconciliation = await self._run_blocking(
            self.reconciler.reconcile_delete, self._snapshot_items(sale)
        )
        await self._run_blocking(
            self._persist_or_compensate, reconciliation, partial(self.repository.delete_sale, sale)
        )
        logger.info(f"🗑️ Venta {sale_id} eliminada por usuario {current_user.id}")

        return {
            "success": True,
            "sale_id": sale_id,
            "message": "Venta eliminada exitosamente",
            "stock_changes": describe_deltas(reconciliation.applied)
        }

    # ==================== CONSULTAS ====================

    async def get_sale(self, sale_id: int, current_user: User) -> Dict[str, Any]:
        sale = ensure_sale_access(current_user, self.repository.get_sale_by_id(sale_id), sale_id)
        return self._serialize_sale(sale)

    async def list_sales(self, current_user: User) -> List[Dict[str, Any]]:
        """
        Administrador: todas las ventas. Otros roles: solo las propias.
        """
        sales = self.repository.get_sales(seller_id=scope_seller_id(current_user))
        return [self._serialize_sale(sale) for sale in sales]

    # ==================== REPORTES ====================

    async def get_sales_report(
        self,
        start_date: date,
        end_date: date,
        current_user: User
    ) -> Dict[str, Any]:
        """
        Reporte de ventas por rango de fechas (inclusivo)
        """
        report = self._build_report(start_date, end_date, current_user)

        return {
            "success": True,
            "start_date": report.start_date,
            "end_date": report.end_date,
            "sales": [self._serialize_sale(sale) for sale in report.sales],
            "total_amount": float(report.total_amount),
            "count": report.count,
            "requested_by": self._requester_info(current_user)
        }

    async def render_sales_report(
        self,
        start_date: date,
        end_date: date,
        current_user: User
    ) -> bytes:
        """
        Reporte de ventas renderizado (PDF por defecto)
        """
        report = self._build_report(start_date, end_date, current_user)
        return render_report(self.renderer, report, self._requester_info(current_user))

    def _build_report(self, start_date: date, end_date: date, current_user: User):
        start, end = report_window(start_date, end_date)
        sales = self.repository.get_sales_in_range(
            start, end, seller_id=scope_seller_id(current_user)
        )
        return build_report(sales, start_date, end_date)

    # ==================== HELPERS ====================

    @staticmethod
    async def _run_blocking(func: Callable[..., Any], *args: Any) -> Any:
        """
        Ejecutar en el pool de hilos las llamadas bloqueantes al inventario
        para no detener el event loop mientras esperan su timeout.
        """
        return await asyncio.get_event_loop().run_in_executor(None, partial(func, *args))

    def _persist_or_compensate(self, reconciliation: ReconciliationResult, operation: Callable[[], Any]):
        try:
            return operation()
        except Exception as e:
            self.repository.rollback()
            logger.error(f"❌ Falló la persistencia tras reconciliar stock, compensando: {e}")
            reconciliation.compensate()
            if isinstance(e, SQLAlchemyError):
                raise SalesAppError(f"Error guardando la venta: {e}") from e
            raise

    @staticmethod
    def _snapshot_items(sale: Sale) -> List[NormalizedItem]:
        return [
            NormalizedItem(
                product_id=item.product_id,
                quantity=item.quantity,
                unit_price=item.unit_price,
                product_name=item.product_name
            )
            for item in sale.items
        ]

    @staticmethod
    def _requester_info(user: User) -> Dict[str, Any]:
        return {
            "id": user.id,
            "name": user.full_name,
            "email": user.email,
            "role": user.role
        }

    @staticmethod
    def _serialize_sale(sale: Sale) -> Dict[str, Any]:
        seller = sale.seller
        return {
            "id": sale.id,
            "seller_id": sale.seller_id,
            "total": float(sale.total or 0),
            "created_at": sale.created_at,
            "updated_at": sale.updated_at,
            "line_items": [
                {
                    "product_id": item.product_id,
                    "product_name": item.product_name,
                    "quantity": item.quantity,
                    "unit_price": float(item.unit_price or 0),
                    "subtotal": float(item.subtotal)
                }
                for item in sale.items
            ],
            "seller_info": {
                "id": seller.id,
                "name": seller.full_name,
                "email": seller.email
            } if seller else {"id": sale.seller_id}
        }
